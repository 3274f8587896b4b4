"""Accumulates per-question events for one training session."""

import logging
from typing import Optional

from app.models.training import QuestionEvent, SessionAggregate

logger = logging.getLogger(__name__)


class SessionRecorder:
    """Builds a SessionAggregate one QuestionEvent at a time.

    The aggregate is finalized exactly once by setting the total time used;
    events arriving after that are rejected.
    """

    def __init__(self, grade: int, difficulty: int):
        self.aggregate = SessionAggregate(grade=grade, difficulty=difficulty)
        self.events: list[QuestionEvent] = []
        self.current_streak = 0

    def record(self, event: QuestionEvent) -> SessionAggregate:
        agg = self.aggregate
        if agg.is_finalized:
            raise RuntimeError("Session already finalized")

        self.events.append(event)
        agg.question_times.append(event.elapsed_seconds)
        agg.answer_history.append(event.is_correct)
        agg.total_questions += 1

        if event.is_correct:
            agg.correct_count += 1
            self.current_streak += 1
            agg.max_streak = max(agg.max_streak, self.current_streak)
        else:
            agg.wrong_count += 1
            agg.wrong_topics.append(event.topic)
            self.current_streak = 0

        logger.debug(
            "Recorded %s answer on %s after %.1fs",
            "correct" if event.is_correct else "wrong", event.topic, event.elapsed_seconds,
        )
        return agg

    def record_answer(self, topic: str, is_correct: bool, elapsed_seconds: float) -> SessionAggregate:
        return self.record(QuestionEvent(
            topic=topic, is_correct=is_correct, elapsed_seconds=max(0.0, elapsed_seconds),
        ))

    def record_miss(self, topic: str, elapsed_seconds: float) -> SessionAggregate:
        """A question left unanswered when time ran out counts as wrong."""
        return self.record_answer(topic, False, elapsed_seconds)

    def finalize(self, total_time_used_seconds: float) -> Optional[SessionAggregate]:
        """Set the total time used. Returns None if already finalized."""
        if self.aggregate.is_finalized:
            return None
        self.aggregate.total_time_used_seconds = max(0.0, total_time_used_seconds)
        return self.aggregate
