"""Assigning quizzes to users."""
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quizhub import db
from quizhub.auth.models import User
from quizhub.common.attempt_logger import AttemptLogger
from quizhub.quiz.exceptions import QuizNotFound, ValidationError
from quizhub.quiz.models import Quiz, UserQuiz


def assign_quiz(quiz_id: int, user_ids: list[int], assigned_by: int) -> dict:
    """
    Assign a quiz to a list of users.

    Users who already hold an assignment for the quiz are skipped.

    Returns:
        {"assigned": [user ids], "skipped": [user ids]}
    """
    if not isinstance(user_ids, list) or not user_ids:
        raise ValidationError(["At least one user id is required"])
    if any(isinstance(uid, bool) or not isinstance(uid, int) for uid in user_ids):
        raise ValidationError(["User ids must be integers"])

    max_batch = current_app.config.get('MAX_ASSIGN_BATCH', 500)
    if max_batch and len(user_ids) > max_batch:
        raise ValidationError([f"Cannot assign more than {max_batch} users at once"])

    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        raise QuizNotFound(quiz_id)

    assigner = db.session.get(User, assigned_by)
    if not assigner or not assigner.is_admin():
        raise ValidationError(["Only administrators can assign quizzes"])

    unique_ids = list(dict.fromkeys(user_ids))
    found = {uid for (uid,) in db.session.query(User.id).filter(User.id.in_(unique_ids)).all()}
    if len(found) != len(unique_ids):
        raise ValidationError(["Some users not found"])

    existing = {
        uid for (uid,) in db.session.query(UserQuiz.user_id).filter(
            UserQuiz.quiz_id == quiz_id,
            UserQuiz.user_id.in_(unique_ids)
        ).all()
    }

    assigned = []
    skipped = [uid for uid in unique_ids if uid in existing]
    try:
        for user_id in unique_ids:
            if user_id in existing:
                continue
            try:
                # Savepoint per row so a concurrent duplicate does not undo the others
                with db.session.begin_nested():
                    db.session.add(UserQuiz(
                        user_id=user_id,
                        quiz_id=quiz_id,
                        assigned_by=assigned_by,
                        status=UserQuiz.STATUS_ASSIGNED,
                    ))
                assigned.append(user_id)
            except IntegrityError:
                skipped.append(user_id)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in assign_quiz: {str(e)}")
        raise

    if assigned:
        AttemptLogger.log_assigned(quiz_id, assigned, assigned_by)

    return {
        'message': f"Quiz assigned to {len(assigned)} users",
        'assigned': assigned,
        'skipped': skipped,
    }
