"""
Quiz module for authoring, assigning and taking quizzes.

Question selection and scoring live in ``selection`` and ``scoring`` as pure
functions; the other modules wrap them with persistence and logging.
"""
