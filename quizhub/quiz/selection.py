"""
Per-attempt random question selection.

``select_questions`` is a plain sampler: it has no memory of earlier calls.
Re-serving an existing selection for a resumed attempt is the job of
``quizhub.quiz.attempts.start_attempt``, which persists the result behind a
unique constraint.
"""
import logging
import random
from typing import Any, Iterable, Optional

from quizhub.quiz.types import OrderedQuestionRef

logger = logging.getLogger(__name__)

_system_random = random.SystemRandom()


def _question_id(item: Any) -> Any:
    return getattr(item, "id", item)


def select_questions(
    pool: Iterable[Any],
    max_questions: int,
    rng: Optional[random.Random] = None,
) -> list[OrderedQuestionRef]:
    """
    Draw a uniform random subset of the pool and fix its display order.

    Args:
        pool: Question ids, or objects exposing an ``id`` attribute
        max_questions: Size of the subset to draw
        rng: Random source; defaults to the OS entropy source

    Returns:
        ``min(max_questions, len(pool))`` refs ordered 1..n
    """
    question_ids = [_question_id(item) for item in pool]
    count = min(max(max_questions or 0, 0), len(question_ids))
    if count == 0:
        return []

    sampled = (rng or _system_random).sample(question_ids, count)
    logger.debug(f"Selected {count} of {len(question_ids)} pool questions")
    return [OrderedQuestionRef(question_id=qid, order=index) for index, qid in enumerate(sampled, start=1)]
