"""Question selection biased toward the previous session's weakest topic."""

import logging
import random
from collections import Counter
from typing import Iterable, Optional

from app.models.training import Question, round_half_up

logger = logging.getLogger(__name__)

WEAK_TOPIC_SHARE = 0.6

# Each level maps to a 1-2 wide band so adjacent levels overlap.
DIFFICULTY_BANDS = {
    1: frozenset({1}),
    2: frozenset({1, 2}),
    3: frozenset({2, 3}),
    4: frozenset({3, 4}),
    5: frozenset({4, 5}),
}
DEFAULT_BAND = DIFFICULTY_BANDS[3]


def allowed_difficulties(level: int) -> frozenset[int]:
    return DIFFICULTY_BANDS.get(level, DEFAULT_BAND)


def _shuffled(items: list, rng: random.Random) -> list:
    out = list(items)
    rng.shuffle(out)
    return out


def select_questions(
    pool: Iterable[Question],
    grade: int,
    difficulty_level: int,
    count: int,
    weak_topic: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> list[Question]:
    """Pick up to `count` questions for a session.

    With a weak topic present in the filtered pool, 60% of the target comes
    from that topic and the rest from other topics. A short partition is
    not backfilled from the other one, so fewer than `count` questions may
    be returned. Returns [] when nothing matches grade and difficulty band.
    """
    rng = rng or random.Random()
    band = allowed_difficulties(difficulty_level)
    filtered = [q for q in pool if q.grade == grade and q.difficulty in band]
    if not filtered:
        logger.info(f"No questions for grade {grade}, difficulty level {difficulty_level}")
        return []

    if weak_topic:
        weak_pool = [q for q in filtered if q.topic == weak_topic]
        if weak_pool:
            other_pool = [q for q in filtered if q.topic != weak_topic]
            weak_count = min(round_half_up(count * WEAK_TOPIC_SHARE), len(weak_pool))
            other_count = max(0, count - weak_count)

            selected = _shuffled(weak_pool, rng)[:weak_count] + _shuffled(other_pool, rng)[:other_count]
            logger.debug(
                "Reinforcing %s: %d weak + %d other questions",
                weak_topic, weak_count, min(other_count, len(other_pool)),
            )
            return _shuffled(selected, rng)

    return _shuffled(filtered, rng)[:count]


def weakest_topic(wrong_topics: Iterable[str]) -> Optional[str]:
    """Topic with the most wrong answers; among equals the topic seen first wins."""
    counts = Counter(wrong_topics)
    best, best_count = None, 0
    for topic, n in counts.items():
        if n > best_count:
            best, best_count = topic, n
    return best
