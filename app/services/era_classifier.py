"""Error/root-cause analysis (ERA) of a finished session.

Rules are evaluated independently, in a fixed order, and every rule that
fires contributes a tag. Downstream code (difficulty adaptation, reports)
matches on tag substrings such as "Careless mistakes" or
"pressure instability", so the tag texts and their order are part of
the stored format.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from app.models.training import SessionAggregate

STABLE_SUMMARY = "Stable performance"
STABLE_SENTINEL = "stable"
STABLE_DISPLAY = "Тұрақты орындау, айқын ERA ескертулері жоқ."
SUMMARY_SEPARATOR = " | "

CARELESS_MEAN_SECONDS = 5
CONCEPT_MEAN_SECONDS = 20
KNOWLEDGE_GAP_WRONG_STREAK = 3
HIGH_ACCURACY_PERCENT = 80
PRESSURE_STDDEV_THRESHOLD = 10


class EraTag(str, Enum):
    CARELESS_MISTAKES = "Careless mistakes: жауаптар өте тез берілген, бірақ қателер бар."
    CONCEPT_MISUNDERSTANDING = (
        "Concept misunderstanding: сұрақтарға көп уақыт жұмсалған, бірақ қателер кездеседі."
    )
    KNOWLEDGE_GAP = "Knowledge gap detected: қатарынан кем дегенде үш қате жауап."
    PRESSURE_INSTABILITY = (
        "Pressure instability: дәлдік жоғары, бірақ уақыт бойынша тұрақсыздық байқалады."
    )
    PRESSURE_INSTABILITY_DETECTED = "Pressure instability detected"


@dataclass(frozen=True)
class EraMetrics:
    mean_time: Optional[float]
    std_dev: Optional[float]
    longest_wrong_streak: int
    high_variance: bool
    accuracy: int
    wrong_count: int


def population_std_dev(times: list[float], mean: float) -> float:
    return math.sqrt(sum((t - mean) ** 2 for t in times) / len(times))


def longest_false_run(history: list[bool]) -> int:
    longest = current = 0
    for correct in history:
        if correct:
            current = 0
        else:
            current += 1
            longest = max(longest, current)
    return longest


def compute_metrics(aggregate: SessionAggregate) -> EraMetrics:
    times = aggregate.question_times
    mean_time = aggregate.mean_time

    std_dev = None
    if len(times) >= 2 and mean_time is not None:
        std_dev = population_std_dev(times, mean_time)

    # Range wider than the mean counts as high variance
    high_variance = False
    if len(times) >= 3 and mean_time is not None:
        high_variance = (max(times) - min(times)) > mean_time

    return EraMetrics(
        mean_time=mean_time,
        std_dev=std_dev,
        longest_wrong_streak=longest_false_run(aggregate.answer_history),
        high_variance=high_variance,
        accuracy=aggregate.accuracy,
        wrong_count=aggregate.wrong_count,
    )


# Evaluation order is the emission order.
RULES: list[tuple[EraTag, Callable[[EraMetrics], bool]]] = [
    (
        EraTag.CARELESS_MISTAKES,
        lambda m: m.mean_time is not None and m.mean_time < CARELESS_MEAN_SECONDS and m.wrong_count > 0,
    ),
    (
        EraTag.CONCEPT_MISUNDERSTANDING,
        lambda m: m.mean_time is not None and m.mean_time > CONCEPT_MEAN_SECONDS and m.wrong_count > 0,
    ),
    (
        EraTag.KNOWLEDGE_GAP,
        lambda m: m.longest_wrong_streak >= KNOWLEDGE_GAP_WRONG_STREAK,
    ),
    (
        EraTag.PRESSURE_INSTABILITY,
        lambda m: m.accuracy > HIGH_ACCURACY_PERCENT and m.high_variance,
    ),
    (
        EraTag.PRESSURE_INSTABILITY_DETECTED,
        lambda m: (
            m.accuracy > HIGH_ACCURACY_PERCENT
            and m.std_dev is not None
            and m.std_dev > PRESSURE_STDDEV_THRESHOLD
        ),
    ),
]


def classify(aggregate: SessionAggregate) -> list[EraTag]:
    metrics = compute_metrics(aggregate)
    return [tag for tag, fires in RULES if fires(metrics)]


def summarize(tags: list[EraTag]) -> str:
    """Single stored string for a session's tags."""
    if not tags:
        return STABLE_SUMMARY
    return SUMMARY_SEPARATOR.join(tag.value for tag in tags)


def tag_values(tags: list[EraTag]) -> list[str]:
    """Tag texts for result payloads; an empty set becomes the "stable" sentinel."""
    return [tag.value for tag in tags] or [STABLE_SENTINEL]


def display_lines(tags: list[EraTag]) -> list[str]:
    """Lines for the result view; the empty case gets the localized stable line."""
    if not tags:
        return [STABLE_DISPLAY]
    return [tag.value for tag in tags]


def has_tag_text(tags: list, text: str) -> bool:
    """Case-insensitive substring match over tags or stored tag strings."""
    needle = text.lower()
    return any(needle in str(getattr(t, "value", t)).lower() for t in tags)
