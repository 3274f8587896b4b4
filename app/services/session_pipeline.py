"""
session_pipeline.py - End-of-session analytics and persistence

Provides:
- analyze_session(aggregate) - PAI, ERA, weak topic and difficulty decision (pure)
- complete_session(store, session) - run the analysis once and persist its outcome
- complete_pending(db, sessions) - complete sessions that ended without a finish call
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.db import training_state as ts
from app.db.store import ScopedStore
from app.models.training import (
    DifficultyState,
    HistoryRecord,
    SessionAggregate,
    SessionResult,
    WeakTopicMarker,
)
from app.services import difficulty_adapter, era_classifier, history_ledger, pai_calculator
from app.services.era_classifier import EraTag
from app.services.difficulty_adapter import DifficultyDecision
from app.services.topic_selector import weakest_topic
from app.services.training_session import TrainingSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionAnalysis:
    pai: Optional[int]
    accuracy: int
    era_tags: list[EraTag]
    era_summary: str
    weak_topic: Optional[str]
    decision: DifficultyDecision
    notice: Optional[str]


def analyze_session(aggregate: SessionAggregate) -> SessionAnalysis:
    pai = pai_calculator.compute(aggregate)
    tags = era_classifier.classify(aggregate)
    decision = difficulty_adapter.adapt(
        previous=aggregate.difficulty,
        accuracy=aggregate.accuracy,
        pai=pai,
        max_streak=aggregate.max_streak,
        total_questions=aggregate.total_questions,
        era_tags=tags,
    )
    return SessionAnalysis(
        pai=pai,
        accuracy=aggregate.accuracy,
        era_tags=tags,
        era_summary=era_classifier.summarize(tags),
        weak_topic=weakest_topic(aggregate.wrong_topics),
        decision=decision,
        notice=difficulty_adapter.notice(aggregate.difficulty, decision),
    )


async def persist_outcome(
    store: ScopedStore,
    aggregate: SessionAggregate,
    analysis: SessionAnalysis,
    now: Optional[datetime] = None,
) -> tuple[HistoryRecord, list[HistoryRecord]]:
    """Write the session's effects: ledger, profile, weak topic, difficulty, last aggregate."""
    record = history_ledger.build_record(aggregate, analysis.pai, analysis.era_summary, now)
    history = await ts.append_history(store, record)

    if store.role == "student":
        await ts.append_to_profile(store, record, grade=aggregate.grade)

    if analysis.weak_topic:
        await ts.save_weak_marker(store, WeakTopicMarker(grade=aggregate.grade, topic=analysis.weak_topic))

    state = await ts.load_difficulty_state(store)
    await ts.save_difficulty_state(
        store, DifficultyState(level=analysis.decision.level, version=state.version + 1)
    )
    await ts.save_last_aggregate(
        store, aggregate.model_copy(update={"difficulty": analysis.decision.level})
    )
    return record, history


async def complete_session(
    store: ScopedStore, session: TrainingSession, now: Optional[datetime] = None
) -> SessionResult:
    """Finalize (if needed), analyze and persist a session exactly once."""
    async with session.completion_lock:
        if session.result is None:
            session.result = await _complete(store, session, now)
    return session.result


async def _complete(store: ScopedStore, session: TrainingSession, now: Optional[datetime]) -> SessionResult:
    session.finish()
    aggregate = session.aggregate
    analysis = analyze_session(aggregate)
    record, history = await persist_outcome(store, aggregate, analysis, now)

    previous = history_ledger.previous_pai(history)
    result = SessionResult(
        session_id=session.session_id,
        pai=analysis.pai,
        accuracy=analysis.accuracy,
        total_questions=aggregate.total_questions,
        correct_count=aggregate.correct_count,
        wrong_count=aggregate.wrong_count,
        max_streak=aggregate.max_streak,
        era_tags=era_classifier.tag_values(analysis.era_tags),
        era_summary=analysis.era_summary,
        era_display=era_classifier.display_lines(analysis.era_tags),
        weak_topic=analysis.weak_topic,
        previous_difficulty=aggregate.difficulty,
        new_difficulty=analysis.decision.level,
        difficulty_changed=analysis.decision.changed,
        adaptation_notice=analysis.notice,
        previous_pai=previous,
        pai_trend=history_ledger.pai_trend(analysis.pai, previous),
        record=record,
    )

    logger.info(
        f"Session {session.session_id} completed: PAI={analysis.pai}, accuracy={analysis.accuracy}%, "
        f"difficulty {aggregate.difficulty}->{analysis.decision.level}"
    )
    return result


async def complete_pending(db, sessions: list[TrainingSession]) -> list[SessionResult]:
    """Persist ended sessions nobody finished, each into its own role scope."""
    results = []
    for session in sessions:
        if session.is_terminal and session.result is None:
            results.append(await complete_session(ScopedStore(db, session.role), session))
    return results
