"""Next-session difficulty from ERA tags, PAI and accuracy.

Decision order, first match wins:

    no questions                         -> unchanged
    knowledge gap / concept misunderstanding -> down one
    accuracy >= 90, PAI >= 80, streak >= 5   -> up one
    accuracy <= 60 without careless mistakes -> down one
    otherwise                            -> unchanged

A low-accuracy session already attributed to carelessness is not also
demoted. The level is clamped to [1, 5].
"""

from typing import Iterable, NamedTuple, Optional, Union

from app.models.training import MAX_DIFFICULTY, MIN_DIFFICULTY
from app.services.era_classifier import EraTag, has_tag_text

RAISED_NOTICE = "Қиындық деңгейі автоматты түрде артты."
LOWERED_NOTICE = "Қиындық деңгейі төмендетілді."

PROMOTE_ACCURACY = 90
PROMOTE_PAI = 80
PROMOTE_STREAK = 5
DEMOTE_ACCURACY = 60


class DifficultyDecision(NamedTuple):
    level: int
    changed: bool
    reason: str


def clamp_difficulty(level: int) -> int:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, level))


def adapt(
    previous: int,
    accuracy: int,
    pai: Optional[int],
    max_streak: int,
    total_questions: int,
    era_tags: Iterable[Union[EraTag, str]],
) -> DifficultyDecision:
    tags = list(era_tags)
    previous = clamp_difficulty(previous)

    if total_questions == 0:
        return DifficultyDecision(previous, False, "no_questions")

    if has_tag_text(tags, "knowledge gap detected") or has_tag_text(tags, "concept misunderstanding"):
        level, reason = previous - 1, "era_demotion"
    elif accuracy >= PROMOTE_ACCURACY and (pai or 0) >= PROMOTE_PAI and max_streak >= PROMOTE_STREAK:
        level, reason = previous + 1, "promotion"
    elif accuracy <= DEMOTE_ACCURACY and not has_tag_text(tags, "careless mistakes"):
        level, reason = previous - 1, "low_accuracy"
    else:
        level, reason = previous, "steady"

    level = clamp_difficulty(level)
    return DifficultyDecision(level, level != previous, reason)


def notice(previous: int, decision: DifficultyDecision) -> Optional[str]:
    """User-facing banner text, only when the level actually moved."""
    if not decision.changed:
        return None
    return RAISED_NOTICE if decision.level > previous else LOWERED_NOTICE
