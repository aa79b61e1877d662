"""
Attempt lifecycle for assigned quizzes.

Users can:
- List the quizzes assigned to them
- Start (or resume) an assigned quiz
- Fetch the questions drawn for their attempt
- Submit their answers once for automatic scoring
- View their result, with per-question detail after the answer release time

The question selection for an attempt is written once behind unique
constraints and re-served verbatim afterwards. Submission claims the attempt
with a conditional ``in_progress -> completed`` update, so scoring runs at
most once per attempt.
"""
import json
import re
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quizhub import db
from quizhub.common.attempt_logger import AttemptLogger
from quizhub.quiz.exceptions import (
    AssignmentNotFound,
    AttemptAlreadyCompleted,
    AttemptExpired,
    AttemptNotStarted,
    ResultNotAvailable,
)
from quizhub.quiz.models import Quiz, UserAnswer, UserQuiz, UserQuizQuestion
from quizhub.quiz.scoring import score_attempt
from quizhub.quiz.selection import select_questions
from quizhub.quiz.types import SubmittedAnswer

_INTEGER_RE = re.compile(r"-?\d+", re.ASCII)


def _get_assignment(user_id: int, quiz_id: int, for_update: bool = False) -> UserQuiz:
    query = UserQuiz.query.filter_by(user_id=user_id, quiz_id=quiz_id)
    if for_update:
        query = query.with_for_update()
    user_quiz = query.first()
    if not user_quiz:
        raise AssignmentNotFound(user_id, quiz_id)
    return user_quiz


def _load_selection(user_quiz_id: int) -> list[UserQuizQuestion]:
    return UserQuizQuestion.query.filter_by(
        user_quiz_id=user_quiz_id
    ).order_by(UserQuizQuestion.question_order).all()


def _serialize_question(entry: UserQuizQuestion) -> dict:
    question = entry.question
    return {
        'id': question.id,
        'question_text': question.question_text,
        'question_type': question.question_type,
        'marks': question.marks,
        'order': entry.question_order,
        # Never expose is_correct while the attempt is running
        'options': [
            {'id': opt.id, 'option_text': opt.option_text}
            for opt in question.options
        ],
    }


def _serialize_quiz(quiz: Quiz) -> dict:
    return {
        'id': quiz.id,
        'name': quiz.name,
        'description': quiz.description,
        'time_limit': quiz.time_limit,
        'cutoff': quiz.cutoff,
        'max_questions': quiz.max_questions,
        'negative_marking': quiz.negative_marking,
    }


def _deadline(user_quiz: UserQuiz, quiz: Quiz) -> Optional[datetime]:
    """Latest accepted submission time, or None for untimed quizzes."""
    if not quiz.time_limit or not user_quiz.start_time:
        return None
    grace = current_app.config.get('ATTEMPT_GRACE_SECONDS', 0) or 0
    return user_quiz.start_time + timedelta(minutes=quiz.time_limit, seconds=grace)


def _is_overdue(user_quiz: UserQuiz, quiz: Quiz, now: datetime) -> bool:
    deadline = _deadline(user_quiz, quiz)
    return deadline is not None and now > deadline


def _mark_expired(user_quiz: UserQuiz, now: datetime) -> bool:
    """Move an in-progress attempt to expired. Returns False if it had already moved on."""
    updated = UserQuiz.query.filter_by(
        id=user_quiz.id,
        status=UserQuiz.STATUS_IN_PROGRESS
    ).update({'status': UserQuiz.STATUS_EXPIRED, 'end_time': now}, synchronize_session=False)
    db.session.commit()
    if updated:
        AttemptLogger.log_expired(user_quiz.id, user_quiz.user_id)
    return bool(updated)


def _persist_selection(user_quiz: UserQuiz, quiz: Quiz) -> list[UserQuizQuestion]:
    """
    Draw and store the attempt's questions unless a concurrent start already did.

    The unique (user_quiz_id, question_order) constraint makes the insert
    atomic: the losing request rolls back and reads the winner's selection.
    """
    pool = [entry.question_id for entry in quiz.pool_entries.all()]
    refs = select_questions(pool, quiz.to_config().max_questions)
    if not refs:
        return []

    user_quiz_id = user_quiz.id
    try:
        db.session.add_all([
            UserQuizQuestion(
                user_quiz_id=user_quiz_id,
                question_id=ref.question_id,
                question_order=ref.order
            )
            for ref in refs
        ])
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        AttemptLogger.log_selection_conflict(user_quiz_id)

    return _load_selection(user_quiz_id)


def _coerce_id(value: Any) -> Any:
    """Normalize a client-supplied id; unparseable values are kept as strings and never match."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER_RE.fullmatch(value.strip()):
        return int(value.strip())
    return str(value)


def _id_sort_key(value: Any) -> tuple:
    return (0, value, "") if isinstance(value, int) else (1, 0, str(value))


def parse_answers(payload: Optional[Iterable[Any]]) -> list[SubmittedAnswer]:
    """
    Convert an untrusted answer payload into SubmittedAnswer values.

    Accepts dicts keyed ``question_id``/``questionId`` and
    ``selected_option_ids``/``selectedOptionIds``. Entries without a
    question id are dropped.
    """
    parsed: list[SubmittedAnswer] = []
    for item in payload or []:
        if isinstance(item, SubmittedAnswer):
            parsed.append(item)
            continue
        if not isinstance(item, dict):
            continue

        question_id = _coerce_id(item.get('question_id', item.get('questionId')))
        if question_id is None:
            continue

        raw_ids = item.get('selected_option_ids', item.get('selectedOptionIds')) or []
        if not isinstance(raw_ids, (list, tuple, set, frozenset)):
            raw_ids = [raw_ids]
        option_ids = [_coerce_id(value) for value in raw_ids]
        parsed.append(SubmittedAnswer.of(question_id, [oid for oid in option_ids if oid is not None]))
    return parsed


def start_attempt(user_id: int, quiz_id: int, now: Optional[datetime] = None) -> dict:
    """
    Start an assigned quiz, or resume it if already started.

    The first start draws the user's questions; every later call returns
    the same questions in the same order.
    """
    now = now or datetime.utcnow()
    try:
        user_quiz = _get_assignment(user_id, quiz_id)
        quiz = user_quiz.quiz

        if user_quiz.status == UserQuiz.STATUS_COMPLETED:
            raise AttemptAlreadyCompleted()
        if user_quiz.status == UserQuiz.STATUS_EXPIRED:
            raise AttemptExpired()

        resumed = user_quiz.status == UserQuiz.STATUS_IN_PROGRESS
        if resumed and _is_overdue(user_quiz, quiz, now):
            _mark_expired(user_quiz, now)
            raise AttemptExpired()

        selection = _load_selection(user_quiz.id)
        if not selection and not resumed:
            selection = _persist_selection(user_quiz, quiz)

        if resumed:
            AttemptLogger.log_resumed(user_quiz.id, user_id)
        else:
            # Conditional so a concurrent start cannot reset start_time
            UserQuiz.query.filter_by(
                id=user_quiz.id,
                status=UserQuiz.STATUS_ASSIGNED
            ).update({'status': UserQuiz.STATUS_IN_PROGRESS, 'start_time': now}, synchronize_session=False)
            db.session.commit()
            db.session.refresh(user_quiz)
            AttemptLogger.log_started(user_quiz.id, user_id, len(selection))

        return {
            'message': 'Resuming existing attempt' if resumed else 'Quiz started successfully',
            'resumed': resumed,
            'user_quiz': {
                'id': user_quiz.id,
                'status': user_quiz.status,
                'start_time': user_quiz.start_time.isoformat() if user_quiz.start_time else None,
                'quiz': _serialize_quiz(quiz),
            },
            'questions': [_serialize_question(entry) for entry in selection],
        }

    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in start_attempt: {str(e)}")
        raise


def assigned_quizzes(user_id: int) -> list[dict]:
    """Every quiz assigned to the user, newest assignment first."""
    rows = UserQuiz.query.filter_by(user_id=user_id).order_by(
        UserQuiz.assigned_at.desc(), UserQuiz.id.desc()
    ).all()

    quizzes = []
    for user_quiz in rows:
        quiz = user_quiz.quiz
        entry = _serialize_quiz(quiz)
        entry.update({
            'user_quiz_id': user_quiz.id,
            'status': user_quiz.status,
            'assigned_at': user_quiz.assigned_at.isoformat() if user_quiz.assigned_at else None,
            'start_time': user_quiz.start_time.isoformat() if user_quiz.start_time else None,
        })
        quizzes.append(entry)
    return quizzes


def get_attempt_questions(user_id: int, quiz_id: int) -> list[dict]:
    """Return the persisted questions of a running attempt in display order."""
    user_quiz = _get_assignment(user_id, quiz_id)

    if user_quiz.status == UserQuiz.STATUS_ASSIGNED:
        raise AttemptNotStarted()
    if user_quiz.status == UserQuiz.STATUS_COMPLETED:
        raise AttemptAlreadyCompleted()
    if user_quiz.status == UserQuiz.STATUS_EXPIRED:
        raise AttemptExpired()

    return [_serialize_question(entry) for entry in _load_selection(user_quiz.id)]


def submit_attempt(
    user_id: int,
    quiz_id: int,
    answers: Optional[Iterable[Any]],
    now: Optional[datetime] = None,
) -> dict:
    """
    Score and complete a running attempt.

    Only the questions drawn for this attempt count; answers for any other
    question id are ignored. Correctness always comes from the stored
    options, never from the payload.
    """
    now = now or datetime.utcnow()
    submitted = parse_answers(answers)
    try:
        user_quiz = _get_assignment(user_id, quiz_id, for_update=True)
        quiz = user_quiz.quiz

        if user_quiz.status == UserQuiz.STATUS_COMPLETED:
            AttemptLogger.log_rejected_submission(user_quiz.id, user_id, "already completed")
            raise AttemptAlreadyCompleted()
        if user_quiz.status == UserQuiz.STATUS_EXPIRED:
            AttemptLogger.log_rejected_submission(user_quiz.id, user_id, "expired")
            raise AttemptExpired()
        if user_quiz.status == UserQuiz.STATUS_ASSIGNED:
            AttemptLogger.log_rejected_submission(user_quiz.id, user_id, "not started")
            raise AttemptNotStarted()
        if _is_overdue(user_quiz, quiz, now):
            AttemptLogger.log_rejected_submission(user_quiz.id, user_id, "time limit exceeded")
            _mark_expired(user_quiz, now)
            raise AttemptExpired()

        config = quiz.to_config()
        questions = [entry.question.to_data() for entry in _load_selection(user_quiz.id)]
        result = score_attempt(questions, config.negative_marking, submitted, cutoff=config.cutoff)

        claimed = UserQuiz.query.filter_by(
            id=user_quiz.id,
            status=UserQuiz.STATUS_IN_PROGRESS
        ).update({
            'status': UserQuiz.STATUS_COMPLETED,
            'end_time': now,
            'score': result.total_score,
            'total_marks': result.total_marks,
            'percentage': result.percentage,
        }, synchronize_session=False)

        if not claimed:
            db.session.rollback()
            AttemptLogger.log_rejected_submission(user_quiz.id, user_id, "already completed")
            raise AttemptAlreadyCompleted()

        for scored in result.scored_answers:
            db.session.add(UserAnswer(
                user_quiz_id=user_quiz.id,
                question_id=scored.question_id,
                selected_option_ids=json.dumps(sorted(scored.selected_option_ids, key=_id_sort_key)),
                is_correct=scored.is_correct,
                marks_obtained=scored.marks_obtained,
                answered_at=now,
            ))
        db.session.commit()

        AttemptLogger.log_submitted(user_quiz.id, user_id, result.total_score, result.total_marks, result.percentage)

        response = result.to_dict()
        response.update({
            'message': 'Quiz submitted successfully',
            'user_quiz_id': user_quiz.id,
        })
        return response

    except IntegrityError:
        # Answers already stored by a concurrent submission
        db.session.rollback()
        raise AttemptAlreadyCompleted()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in submit_attempt: {str(e)}")
        raise


def get_attempt_result(user_id: int, quiz_id: int, now: Optional[datetime] = None) -> dict:
    """
    Return the stored result of a completed attempt.

    Totals are always included; per-question detail only once the quiz's
    answer release time has passed.
    """
    now = now or datetime.utcnow()
    user_quiz = _get_assignment(user_id, quiz_id)

    if user_quiz.status != UserQuiz.STATUS_COMPLETED:
        raise ResultNotAvailable()

    quiz = user_quiz.quiz
    show_answers = quiz.answer_release_time is None or now >= quiz.answer_release_time

    answers = None
    if show_answers:
        answers = [answer.to_dict() for answer in user_quiz.answers.order_by(UserAnswer.id).all()]

    return {
        'result': {
            'total_score': float(user_quiz.score) if user_quiz.score is not None else 0,
            'total_marks': user_quiz.total_marks or 0,
            'percentage': float(user_quiz.percentage) if user_quiz.percentage is not None else 0,
            'passed': user_quiz.is_passing(),
            'start_time': user_quiz.start_time.isoformat() if user_quiz.start_time else None,
            'end_time': user_quiz.end_time.isoformat() if user_quiz.end_time else None,
            'quiz': {
                'id': quiz.id,
                'name': quiz.name,
                'description': quiz.description,
                'cutoff': quiz.cutoff,
                'answer_release_time': quiz.answer_release_time.isoformat() if quiz.answer_release_time else None,
            },
        },
        'answers': answers,
        'message': None if show_answers else 'Detailed answers will be available after the release time',
    }


def expire_overdue_attempts(now: Optional[datetime] = None) -> int:
    """Mark every in-progress attempt past its time limit as expired."""
    now = now or datetime.utcnow()
    try:
        running = UserQuiz.query.join(Quiz, UserQuiz.quiz_id == Quiz.id).filter(
            UserQuiz.status == UserQuiz.STATUS_IN_PROGRESS,
            Quiz.time_limit.isnot(None)
        ).all()

        expired = 0
        for user_quiz in running:
            if _is_overdue(user_quiz, user_quiz.quiz, now) and _mark_expired(user_quiz, now):
                expired += 1

        if expired:
            current_app.logger.info(f"Expired {expired} overdue quiz attempts")
        return expired

    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in expire_overdue_attempts: {str(e)}")
        raise
