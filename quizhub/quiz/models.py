"""
Database models for quizzes, question pools and user attempts.

Supports three question types, all graded from option selections:
- mcq: one correct option
- multiple_select: one or more correct options, graded all-or-nothing
- true_false: two options, one correct
"""
import json
from datetime import datetime

from quizhub import db
from quizhub.quiz.types import OptionData, QuestionData, QuizConfig


class Quiz(db.Model):
    """
    Model for quizzes.

    The question pool is linked through QuizQuestion; each user attempt
    draws ``max_questions`` of them at start time.
    """
    __tablename__ = "quizzes"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    time_limit = db.Column(db.Integer, nullable=True)  # Minutes; null means untimed
    cutoff = db.Column(db.Integer, nullable=False, default=0)  # Passing percentage
    max_questions = db.Column(db.Integer, nullable=False, default=10)  # Per-user subset size
    negative_marking = db.Column(db.Boolean, nullable=False, default=False)
    answer_release_time = db.Column(db.DateTime, nullable=True)  # Detailed answers hidden until then
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete='SET NULL'), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator = db.relationship("User", foreign_keys=[created_by])
    pool_entries = db.relationship("QuizQuestion", backref="quiz", lazy="dynamic", cascade="all, delete-orphan", order_by="QuizQuestion.question_order")
    assignments = db.relationship("UserQuiz", backref="quiz", lazy="dynamic", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Quiz {self.id}: {self.name}>"

    def pool_questions(self) -> list["Question"]:
        """Questions in the pool, in authoring order."""
        return [entry.question for entry in self.pool_entries.all()]

    def get_total_marks(self) -> int:
        """Sum of marks over the whole pool."""
        return sum(q.marks for q in self.pool_questions())

    def to_config(self) -> QuizConfig:
        return QuizConfig(
            max_questions=self.max_questions,
            negative_marking=bool(self.negative_marking),
            cutoff=self.cutoff or 0,
        )


class Question(db.Model):
    """
    Model for quiz questions.
    Correctness lives on the options, never on the question itself.
    """
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    question_text = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(50), nullable=False, default="mcq", index=True)
    marks = db.Column(db.Integer, nullable=False, default=1)
    correct_explanation = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    options = db.relationship("QuestionOption", backref="question", lazy="select", cascade="all, delete-orphan", order_by="QuestionOption.order_index")

    def __repr__(self) -> str:
        return f"<Question {self.id}: {self.question_type}>"

    def to_data(self) -> QuestionData:
        """Snapshot as an immutable value for scoring."""
        return QuestionData(
            id=self.id,
            question_type=self.question_type,
            marks=self.marks,
            text=self.question_text,
            options=tuple(
                OptionData(id=opt.id, text=opt.option_text, is_correct=bool(opt.is_correct))
                for opt in self.options
            ),
        )

    def correct_option_ids(self) -> list[int]:
        return [opt.id for opt in self.options if opt.is_correct]


class QuestionOption(db.Model):
    """Model for the options of a question."""
    __tablename__ = "question_options"

    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id", ondelete='CASCADE'), nullable=False, index=True)
    option_text = db.Column(db.Text, nullable=False)
    is_correct = db.Column(db.Boolean, default=False, nullable=False)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<QuestionOption {self.id}: {self.option_text[:50]}>"


class QuizQuestion(db.Model):
    """Pool membership of a question in a quiz."""
    __tablename__ = "quiz_questions"

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete='CASCADE'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id", ondelete='CASCADE'), nullable=False, index=True)
    question_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    question = db.relationship("Question")

    __table_args__ = (
        db.UniqueConstraint('quiz_id', 'question_id', name='uq_quiz_question'),
    )


class UserQuiz(db.Model):
    """
    Assignment of a quiz to a user, and the user's single attempt at it.

    Status moves assigned -> in_progress -> completed, or to expired when
    the time limit runs out.
    """
    __tablename__ = "user_quizzes"

    STATUS_ASSIGNED = "assigned"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_COMPLETED = "completed"
    STATUS_EXPIRED = "expired"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete='CASCADE'), nullable=False, index=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete='CASCADE'), nullable=False, index=True)
    assigned_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete='SET NULL'), nullable=True)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    start_time = db.Column(db.DateTime, nullable=True)
    end_time = db.Column(db.DateTime, nullable=True)
    score = db.Column(db.Numeric(8, 2), nullable=True)  # Sum of marks obtained, may be negative
    total_marks = db.Column(db.Integer, nullable=True)
    percentage = db.Column(db.Numeric(6, 2), nullable=True)  # May be negative
    status = db.Column(db.String(20), nullable=False, default=STATUS_ASSIGNED, index=True)

    # Relationships
    user = db.relationship("User", foreign_keys=[user_id], backref="user_quizzes")
    selected_questions = db.relationship("UserQuizQuestion", backref="user_quiz", lazy="dynamic", cascade="all, delete-orphan", order_by="UserQuizQuestion.question_order")
    answers = db.relationship("UserAnswer", backref="user_quiz", lazy="dynamic", cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('user_id', 'quiz_id', name='uq_user_quiz'),
        db.Index('ix_user_quizzes_quiz_status', 'quiz_id', 'status'),
    )

    def __repr__(self) -> str:
        return f"<UserQuiz {self.id}: User {self.user_id}, Quiz {self.quiz_id} ({self.status})>"

    def is_passing(self) -> bool:
        """Check if the scored attempt meets the quiz cutoff."""
        if self.status != self.STATUS_COMPLETED or self.percentage is None:
            return False
        return float(self.percentage) >= float(self.quiz.cutoff or 0)


class UserQuizQuestion(db.Model):
    """
    The questions drawn for one attempt, in display order.
    Written once when the attempt starts and never modified.
    """
    __tablename__ = "user_quiz_questions"

    id = db.Column(db.Integer, primary_key=True)
    user_quiz_id = db.Column(db.Integer, db.ForeignKey("user_quizzes.id", ondelete='CASCADE'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id", ondelete='CASCADE'), nullable=False)
    question_order = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    question = db.relationship("Question")

    # Both constraints make a second, concurrent selection for the same attempt fail on insert
    __table_args__ = (
        db.UniqueConstraint('user_quiz_id', 'question_id', name='uq_user_quiz_question'),
        db.UniqueConstraint('user_quiz_id', 'question_order', name='uq_user_quiz_question_order'),
    )


class UserAnswer(db.Model):
    """A scored answer to one question of an attempt."""
    __tablename__ = "user_answers"

    id = db.Column(db.Integer, primary_key=True)
    user_quiz_id = db.Column(db.Integer, db.ForeignKey("user_quizzes.id", ondelete='CASCADE'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id", ondelete='CASCADE'), nullable=False, index=True)
    selected_option_ids = db.Column(db.Text, nullable=False, default="[]")  # JSON array of option ids
    is_correct = db.Column(db.Boolean, nullable=True)
    marks_obtained = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    answered_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    question = db.relationship("Question")

    __table_args__ = (
        db.UniqueConstraint('user_quiz_id', 'question_id', name='uq_user_answer'),
    )

    def __repr__(self) -> str:
        return f"<UserAnswer {self.id}: Question {self.question_id}>"

    def get_selected_option_ids(self) -> list:
        try:
            return json.loads(self.selected_option_ids or "[]")
        except (ValueError, TypeError):
            return []

    def to_dict(self) -> dict:
        """Answer detail including the correct options, for released results and reports."""
        question = self.question
        return {
            'question_id': self.question_id,
            'question_text': question.question_text if question else None,
            'question_type': question.question_type if question else None,
            'marks': question.marks if question else 0,
            'selected_option_ids': self.get_selected_option_ids(),
            'correct_option_ids': question.correct_option_ids() if question else [],
            'is_correct': self.is_correct,
            'marks_obtained': float(self.marks_obtained) if self.marks_obtained is not None else 0,
            'correct_explanation': question.correct_explanation if question else None,
            'options': [
                {'id': opt.id, 'option_text': opt.option_text, 'is_correct': opt.is_correct}
                for opt in question.options
            ] if question else [],
        }
