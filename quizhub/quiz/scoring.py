"""
Answer scoring.

Converts a learner's raw option selections into per-question correctness,
marks and attempt totals. Everything here is a pure function over the value
types in ``quizhub.quiz.types``: the caller supplies the authoritative
questions (with correctness flags) and the untrusted answer payload.

Grading rules:
- mcq / true_false: correct only when exactly one option is selected and it
  is a correct option.
- multiple_select: correct only when the selected set equals the correct set.
  There is no partial credit.
- A wrong answer costs a quarter of the question's marks when negative
  marking is on, and nothing otherwise. Correct answers are never penalised.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from quizhub.quiz.types import (
    AttemptResult,
    QuestionData,
    QuestionType,
    ScoredAnswer,
    SubmittedAnswer,
)

logger = logging.getLogger(__name__)

NEGATIVE_MARKING_FRACTION = Decimal("0.25")
PERCENT_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")


def is_answer_correct(question: QuestionData, selected_option_ids: Iterable) -> bool:
    """Check a selection against the question's correct options."""
    selected = frozenset(selected_option_ids)
    correct_ids = question.correct_option_ids

    if question.question_type in QuestionType.SINGLE_ANSWER_TYPES:
        return len(selected) == 1 and next(iter(selected)) in correct_ids

    if question.question_type == QuestionType.MULTIPLE_SELECT:
        return selected == correct_ids

    return False


def marks_for(question: QuestionData, is_correct: bool, negative_marking: bool) -> Decimal:
    """Marks earned (or lost) on one question."""
    if is_correct:
        return Decimal(question.marks)
    if negative_marking:
        return -NEGATIVE_MARKING_FRACTION * Decimal(question.marks)
    return ZERO


def calculate_percentage(total_score: Decimal, total_marks) -> Decimal:
    """Percentage rounded half-up to two places; 0 when there are no marks."""
    if not total_marks or total_marks <= 0:
        return ZERO
    raw = Decimal(total_score) / Decimal(total_marks) * 100
    return raw.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


def _latest_answers(answers: Iterable[SubmittedAnswer]) -> list[SubmittedAnswer]:
    # Last write wins for repeated question ids; position of first occurrence is kept
    latest: dict = {}
    for answer in answers:
        latest[answer.question_id] = answer
    return list(latest.values())


def score_attempt(
    questions: Iterable[QuestionData],
    negative_marking: bool,
    answers: Iterable[SubmittedAnswer],
    cutoff=0,
) -> AttemptResult:
    """
    Score a submitted attempt.

    Args:
        questions: Authoritative questions with their options
        negative_marking: Whether wrong answers are penalised
        answers: Learner submissions; ids not in ``questions`` are ignored
        cutoff: Pass mark as a percentage (inclusive)

    Returns:
        AttemptResult with one ScoredAnswer per evaluated question
    """
    by_id = {question.id: question for question in questions}

    scored: list[ScoredAnswer] = []
    total_score = ZERO
    total_marks = 0

    for answer in _latest_answers(answers):
        question = by_id.get(answer.question_id)
        if question is None:
            logger.debug(f"Skipping answer for unknown question {answer.question_id!r}")
            continue

        is_correct = is_answer_correct(question, answer.selected_option_ids)
        marks_obtained = marks_for(question, is_correct, negative_marking)

        total_score += marks_obtained
        total_marks += question.marks
        scored.append(ScoredAnswer(
            question_id=question.id,
            is_correct=is_correct,
            marks_obtained=marks_obtained,
            selected_option_ids=answer.selected_option_ids,
        ))

    percentage = calculate_percentage(total_score, total_marks)
    return AttemptResult(
        scored_answers=tuple(scored),
        total_score=total_score,
        total_marks=total_marks,
        percentage=percentage,
        passed=percentage >= Decimal(str(cutoff or 0)),
    )
