"""
Immutable value types consumed and produced by question selection and scoring.

These are deliberately decoupled from the SQLAlchemy models in
``quizhub.quiz.models`` so the selection and scoring functions never rely on
lazy-loaded relationships.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Hashable


class QuestionType:
    """Supported question types."""
    MCQ = "mcq"
    MULTIPLE_SELECT = "multiple_select"
    TRUE_FALSE = "true_false"

    ALL = (MCQ, MULTIPLE_SELECT, TRUE_FALSE)
    SINGLE_ANSWER_TYPES = frozenset({MCQ, TRUE_FALSE})


@dataclass(frozen=True)
class OptionData:
    id: int
    text: str = ""
    is_correct: bool = False


@dataclass(frozen=True)
class QuestionData:
    id: int
    question_type: str
    marks: int
    options: tuple[OptionData, ...] = ()
    text: str = ""

    @property
    def correct_option_ids(self) -> frozenset:
        return frozenset(opt.id for opt in self.options if opt.is_correct)


@dataclass(frozen=True)
class QuizConfig:
    max_questions: int
    negative_marking: bool = False
    cutoff: int = 0


@dataclass(frozen=True)
class OrderedQuestionRef:
    question_id: Any
    order: int  # 1-based display position


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: Any
    selected_option_ids: frozenset[Hashable] = frozenset()

    @classmethod
    def of(cls, question_id, selected_option_ids=()) -> "SubmittedAnswer":
        return cls(question_id, frozenset(selected_option_ids or ()))


@dataclass(frozen=True)
class ScoredAnswer:
    question_id: Any
    is_correct: bool
    marks_obtained: Decimal
    selected_option_ids: frozenset = frozenset()


@dataclass(frozen=True)
class AttemptResult:
    scored_answers: tuple[ScoredAnswer, ...] = field(default_factory=tuple)
    total_score: Decimal = Decimal("0")
    total_marks: int = 0
    percentage: Decimal = Decimal("0")
    passed: bool = False

    def to_dict(self) -> dict:
        return {
            'total_score': float(self.total_score),
            'total_marks': self.total_marks,
            'percentage': float(self.percentage),
            'passed': self.passed,
        }
