class QuizError(Exception):
    """Base exception for quiz lifecycle and authoring operations."""
    status_code = 400

    def __init__(self, message: str = "Quiz operation failed"):
        self.message = message
        super().__init__(message)


class QuizNotFound(QuizError):
    """Raised when a quiz id does not exist."""
    status_code = 404

    def __init__(self, quiz_id: int, message: str = "Quiz not found"):
        self.quiz_id = quiz_id
        super().__init__(message)


class AssignmentNotFound(QuizError):
    """Raised when a quiz has not been assigned to the user."""
    status_code = 404

    def __init__(self, user_id: int, quiz_id: int, message: str = "Quiz not assigned to user"):
        self.user_id = user_id
        self.quiz_id = quiz_id
        super().__init__(message)


class AttemptAlreadyCompleted(QuizError):
    """Raised when starting or submitting an attempt that has been scored."""
    def __init__(self, message: str = "Quiz already completed"):
        super().__init__(message)


class AttemptExpired(QuizError):
    """Raised when the attempt ran past its time limit."""
    def __init__(self, message: str = "Quiz time limit has expired"):
        super().__init__(message)


class AttemptNotStarted(QuizError):
    """Raised when questions or a submission are requested before the quiz was started."""
    def __init__(self, message: str = "Quiz has not been started"):
        super().__init__(message)


class ResultNotAvailable(QuizError):
    """Raised when a result is requested for an attempt that is not completed."""
    def __init__(self, message: str = "Quiz not completed yet"):
        super().__init__(message)


class ValidationError(QuizError):
    """Raised when an authoring or assignment payload is invalid."""
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(errors[0] if errors else "Invalid data")


class UserNotFound(QuizError):
    """Raised when a user id does not exist."""
    status_code = 404

    def __init__(self, user_id: int, message: str = "User not found"):
        self.user_id = user_id
        super().__init__(message)
