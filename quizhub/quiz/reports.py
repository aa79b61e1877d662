"""
Result reports for administrators.

Admins can:
- List every assignment of a quiz with its score, best first
- List every quiz result of one user with per-answer detail
"""
from typing import Optional

from quizhub import db
from quizhub.auth.models import User
from quizhub.quiz.exceptions import QuizNotFound, UserNotFound
from quizhub.quiz.models import Quiz, UserAnswer, UserQuiz


def _as_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _serialize_attempt(user_quiz: UserQuiz) -> dict:
    return {
        'id': user_quiz.id,
        'quiz_id': user_quiz.quiz_id,
        'status': user_quiz.status,
        'total_score': _as_float(user_quiz.score),
        'total_marks': user_quiz.total_marks,
        'percentage': _as_float(user_quiz.percentage),
        'passed': user_quiz.is_passing(),
        'assigned_at': user_quiz.assigned_at.isoformat() if user_quiz.assigned_at else None,
        'start_time': user_quiz.start_time.isoformat() if user_quiz.start_time else None,
        'end_time': user_quiz.end_time.isoformat() if user_quiz.end_time else None,
    }


def quiz_results(quiz_id: int) -> dict:
    """
    Results of every user assigned to a quiz.

    Rows are ordered by percentage, highest first; attempts without a
    score come last.
    """
    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        raise QuizNotFound(quiz_id)

    rows = UserQuiz.query.filter_by(quiz_id=quiz_id).all()
    rows.sort(key=lambda uq: (uq.percentage is None, -(uq.percentage or 0), uq.id))

    results = []
    for user_quiz in rows:
        entry = _serialize_attempt(user_quiz)
        user = user_quiz.user
        entry['user'] = {'id': user.id, 'name': user.name, 'email': user.email} if user else None
        results.append(entry)

    completed = [uq for uq in rows if uq.status == UserQuiz.STATUS_COMPLETED]
    average = None
    if completed:
        average = round(sum(float(uq.percentage or 0) for uq in completed) / len(completed), 2)

    return {
        'quiz': {'id': quiz.id, 'name': quiz.name, 'cutoff': quiz.cutoff, 'pool_marks': quiz.get_total_marks()},
        'results': results,
        'summary': {
            'assigned': len(rows),
            'completed': len(completed),
            'passed': sum(1 for uq in completed if uq.is_passing()),
            'average_percentage': average,
        },
    }


def user_results(user_id: int) -> list[dict]:
    """Every quiz assigned to a user, newest first, with scored answers."""
    if not db.session.get(User, user_id):
        raise UserNotFound(user_id)

    rows = UserQuiz.query.filter_by(user_id=user_id).order_by(
        UserQuiz.assigned_at.desc(), UserQuiz.id.desc()
    ).all()

    results = []
    for user_quiz in rows:
        entry = _serialize_attempt(user_quiz)
        quiz = user_quiz.quiz
        entry['quiz'] = {
            'id': quiz.id,
            'name': quiz.name,
            'description': quiz.description,
            'cutoff': quiz.cutoff,
        }
        entry['answers'] = [
            answer.to_dict() for answer in user_quiz.answers.order_by(UserAnswer.id).all()
        ]
        results.append(entry)
    return results
