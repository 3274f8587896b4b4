"""Performance-Pressure Index (PAI).

PAI = 0.5 * accuracy + 0.3 * speed + 0.2 * consistency, each term on a
0-100 scale:

    accuracy     100 * correct / total
    speed        100 * STANDARD_TIME_SECONDS / time used, capped at 100
    consistency  100 * max streak / total

Finishing under the standard budget never earns more than full speed
credit; taking longer degrades the term proportionally.
"""

import math
from typing import Optional

from app.models.training import SessionAggregate, round_half_up

STANDARD_TIME_SECONDS = 180

ACCURACY_WEIGHT = 0.5
SPEED_WEIGHT = 0.3
CONSISTENCY_WEIGHT = 0.2


def _pai(total: int, correct: int, max_streak: int, time_used: float) -> int:
    accuracy = correct / total * 100
    speed = min(100.0, STANDARD_TIME_SECONDS / time_used * 100)
    consistency = max_streak / total * 100
    return round_half_up(
        accuracy * ACCURACY_WEIGHT + speed * SPEED_WEIGHT + consistency * CONSISTENCY_WEIGHT
    )


def compute(aggregate: SessionAggregate) -> Optional[int]:
    """Final PAI for a finished session.

    None when nothing was answered or the total time is missing or not
    positive (unmeasurable, not infinitely fast).
    """
    time_used = aggregate.total_time_used_seconds
    if aggregate.total_questions == 0 or time_used is None or time_used <= 0:
        return None
    return _pai(aggregate.total_questions, aggregate.correct_count, aggregate.max_streak, time_used)


def preview(aggregate: SessionAggregate, elapsed_seconds: float) -> Optional[int]:
    """Live PAI during a session, using the elapsed time so far (at least 1s)."""
    if aggregate.total_questions == 0:
        return None
    elapsed = max(1, math.floor(elapsed_seconds))
    return _pai(aggregate.total_questions, aggregate.correct_count, aggregate.max_streak, elapsed)
