"""
training_state.py - Persisted cross-session state for the training loop

Provides load/save functions for:
- last finalized session aggregate
- history ledger
- weak-topic marker
- difficulty state
- student profile
- review results

All loaders return an empty default when nothing valid is stored.
"""

from typing import List, Optional

from app.db.store import (
    DIFFICULTY_KEY,
    HISTORY_KEY,
    PROFILE_KEY,
    REVIEW_RESULTS_KEY,
    STATS_KEY,
    WEAK_TOPIC_KEY,
    ScopedStore,
)
from app.models.training import (
    DifficultyState,
    HistoryRecord,
    ReviewResult,
    SessionAggregate,
    StudentProfile,
    WeakTopicMarker,
)

DEFAULT_STUDENT_NAME = "Студент"


# ══════════════════════════════════════════════════════════════════════════════
# LAST SESSION AGGREGATE
# ══════════════════════════════════════════════════════════════════════════════

async def load_last_aggregate(store: ScopedStore) -> Optional[SessionAggregate]:
    return await store.get(STATS_KEY, Optional[SessionAggregate], None)


async def save_last_aggregate(store: ScopedStore, aggregate: SessionAggregate) -> None:
    await store.set(STATS_KEY, aggregate)


# ══════════════════════════════════════════════════════════════════════════════
# HISTORY LEDGER
# ══════════════════════════════════════════════════════════════════════════════

async def load_history(store: ScopedStore) -> List[HistoryRecord]:
    return await store.get(HISTORY_KEY, List[HistoryRecord], [])


async def append_history(store: ScopedStore, record: HistoryRecord) -> List[HistoryRecord]:
    """Append one record; returns the ledger including it."""
    return await store.append(HISTORY_KEY, HistoryRecord, record)


# ══════════════════════════════════════════════════════════════════════════════
# WEAK TOPIC MARKER
# ══════════════════════════════════════════════════════════════════════════════

async def load_weak_marker(store: ScopedStore) -> Optional[WeakTopicMarker]:
    return await store.get(WEAK_TOPIC_KEY, Optional[WeakTopicMarker], None)


async def load_weak_topic(store: ScopedStore, grade: int) -> Optional[str]:
    """The stored weak topic, only if it was recorded for this grade."""
    marker = await load_weak_marker(store)
    if marker and marker.grade == grade:
        return marker.topic
    return None


async def save_weak_marker(store: ScopedStore, marker: WeakTopicMarker) -> None:
    await store.set(WEAK_TOPIC_KEY, marker)


# ══════════════════════════════════════════════════════════════════════════════
# DIFFICULTY STATE
# ══════════════════════════════════════════════════════════════════════════════

async def load_difficulty_state(store: ScopedStore) -> DifficultyState:
    return await store.get(DIFFICULTY_KEY, DifficultyState, DifficultyState())


async def save_difficulty_state(store: ScopedStore, state: DifficultyState) -> None:
    await store.set(DIFFICULTY_KEY, state)


# ══════════════════════════════════════════════════════════════════════════════
# STUDENT PROFILE
# ══════════════════════════════════════════════════════════════════════════════

async def load_profile(store: ScopedStore) -> Optional[StudentProfile]:
    if not store.role:
        return None
    return await store.get(PROFILE_KEY, Optional[StudentProfile], None)


async def init_profile_if_needed(
    store: ScopedStore, name: Optional[str] = None, grade: Optional[int] = None
) -> Optional[StudentProfile]:
    if not store.role:
        return None
    existing = await load_profile(store)
    if existing:
        return existing
    profile = StudentProfile(
        name=(name or "").strip() or DEFAULT_STUDENT_NAME,
        grade=grade,
        role=store.role,
        history=[],
    )
    await store.set(PROFILE_KEY, profile)
    return profile


async def append_to_profile(
    store: ScopedStore, record: HistoryRecord, grade: Optional[int] = None
) -> Optional[StudentProfile]:
    profile = await init_profile_if_needed(store, grade=grade)
    if not profile:
        return None
    updated = profile.model_copy(update={"history": [*profile.history, record]})
    await store.set(PROFILE_KEY, updated)
    return updated


# ══════════════════════════════════════════════════════════════════════════════
# REVIEW RESULTS
# ══════════════════════════════════════════════════════════════════════════════

async def load_review_results(store: ScopedStore) -> List[ReviewResult]:
    return await store.get(REVIEW_RESULTS_KEY, List[ReviewResult], [])


async def append_review_result(store: ScopedStore, result: ReviewResult) -> List[ReviewResult]:
    return await store.append(REVIEW_RESULTS_KEY, ReviewResult, result)
