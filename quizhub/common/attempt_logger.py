"""
Attempt audit logging.

This module provides specialized logging for quiz attempt events
such as starts, submissions and rejected submissions.
"""

from flask import current_app
from datetime import datetime


class AttemptLogger:
    """
    Attempt event logger.

    Logs attempt lifecycle events for monitoring and auditing.
    """

    @staticmethod
    def log_assigned(quiz_id: int, user_ids: list[int], assigned_by: int):
        """
        Log quiz assignment.

        Args:
            quiz_id: Quiz ID
            user_ids: Users that received a new assignment
            assigned_by: Admin user ID
        """
        current_app.logger.info(
            f"QUIZ: Assigned - Quiz ID: {quiz_id}, Users: {user_ids}, "
            f"Assigned by: {assigned_by}, Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_started(user_quiz_id: int, user_id: int, question_count: int):
        """
        Log the first start of an attempt.

        Args:
            user_quiz_id: Attempt ID
            user_id: User ID
            question_count: Number of questions drawn
        """
        current_app.logger.info(
            f"QUIZ: Attempt started - Attempt ID: {user_quiz_id}, User ID: {user_id}, "
            f"Questions: {question_count}, Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_resumed(user_quiz_id: int, user_id: int):
        """
        Log a resumed attempt.

        Args:
            user_quiz_id: Attempt ID
            user_id: User ID
        """
        current_app.logger.info(
            f"QUIZ: Attempt resumed - Attempt ID: {user_quiz_id}, User ID: {user_id}, "
            f"Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_selection_conflict(user_quiz_id: int):
        """
        Log a concurrent start that lost the race to persist its selection.

        Args:
            user_quiz_id: Attempt ID
        """
        current_app.logger.warning(
            f"QUIZ: Selection already persisted by a concurrent start - "
            f"Attempt ID: {user_quiz_id}, Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_submitted(user_quiz_id: int, user_id: int, score, total_marks: int, percentage):
        """
        Log a scored submission.

        Args:
            user_quiz_id: Attempt ID
            user_id: User ID
            score: Total score
            total_marks: Total marks of evaluated questions
            percentage: Rounded percentage
        """
        current_app.logger.info(
            f"QUIZ: Attempt submitted - Attempt ID: {user_quiz_id}, User ID: {user_id}, "
            f"Score: {score}/{total_marks}, Percentage: {percentage}, "
            f"Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_rejected_submission(user_quiz_id: int, user_id: int, reason: str):
        """
        Log a submission that was refused.

        Args:
            user_quiz_id: Attempt ID
            user_id: User ID
            reason: Why the submission was refused
        """
        current_app.logger.warning(
            f"QUIZ: Submission rejected - Attempt ID: {user_quiz_id}, User ID: {user_id}, "
            f"Reason: {reason}, Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_expired(user_quiz_id: int, user_id: int):
        """
        Log an attempt that ran out of time.

        Args:
            user_quiz_id: Attempt ID
            user_id: User ID
        """
        current_app.logger.warning(
            f"QUIZ: Attempt expired - Attempt ID: {user_quiz_id}, User ID: {user_id}, "
            f"Time: {datetime.utcnow().isoformat()}"
        )
