"""History ledger helpers: building records and reading trends.

The ledger itself is append-only and ordered by completion time; these
functions only derive values from it.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from app.models.training import HistoryRecord, SessionAggregate
from app.services.pai_calculator import STANDARD_TIME_SECONDS


def build_record(
    aggregate: SessionAggregate,
    pai: Optional[int],
    era_summary: str,
    now: Optional[datetime] = None,
) -> HistoryRecord:
    """Ledger entry for a finished session. An unmeasurable PAI is stored as 0."""
    now = now or datetime.now(timezone.utc)
    return HistoryRecord(
        date=now.isoformat(),
        pai=pai if pai is not None else 0,
        accuracy=aggregate.accuracy,
        avg_time=aggregate.mean_time or 0.0,
        training_time_limit=STANDARD_TIME_SECONDS,
        era=era_summary,
    )


def previous_pai(history: list[HistoryRecord]) -> Optional[int]:
    """PAI of the session before the latest one (needs at least two entries)."""
    if len(history) < 2:
        return None
    return history[-2].pai


def pai_trend(current: Optional[int], previous: Optional[int]) -> Optional[Literal["up", "down"]]:
    if current is None or previous is None:
        return None
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return None


def latest(history: list[HistoryRecord]) -> Optional[HistoryRecord]:
    return history[-1] if history else None
