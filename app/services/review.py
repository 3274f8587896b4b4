"""Weak-topic review: pick review questions and log review outcomes."""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from app.db import training_state as ts
from app.db.store import ScopedStore
from app.models.training import Question, ReviewResult, SessionAggregate
from app.services.topic_selector import weakest_topic

logger = logging.getLogger(__name__)

MAX_REVIEW_QUESTIONS = 10
DEFAULT_RETRAIN_COUNT = 10


def review_questions(
    pool: Iterable[Question], aggregate: Optional[SessionAggregate], limit: int = MAX_REVIEW_QUESTIONS
) -> tuple[Optional[str], list[Question]]:
    """Weak topic of the last session and up to `limit` pool questions on it, in pool order."""
    if aggregate is None:
        return None, []
    topic = weakest_topic(aggregate.wrong_topics)
    if topic is None:
        return None, []
    return topic, [q for q in pool if q.topic == topic][:limit]


def retrain_settings(aggregate: Optional[SessionAggregate]) -> dict:
    if aggregate is None:
        return {"grade": None, "difficulty": None, "count": DEFAULT_RETRAIN_COUNT}
    return {
        "grade": aggregate.grade,
        "difficulty": aggregate.difficulty,
        "count": aggregate.total_questions or DEFAULT_RETRAIN_COUNT,
    }


async def record_review(
    store: ScopedStore, total: int, correct: int, now: Optional[datetime] = None
) -> ReviewResult:
    now = now or datetime.now(timezone.utc)
    result = ReviewResult(
        date=now.isoformat(), total=total, correct=correct, wrong=max(0, total - correct)
    )
    await ts.append_review_result(store, result)
    logger.info(f"Review recorded: {correct}/{total} correct")
    return result
