"""Training session endpoints: start, live view, answering and finishing."""

import logging
import random
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.config import settings
from app.db import training_state as ts
from app.db.store import ScopedStore
from app.models.training import MAX_GRADE, MIN_GRADE, SessionResult
from app.routes.deps import get_registry, get_session, get_store
from app.services.difficulty_adapter import clamp_difficulty
from app.services.question_bank import get_question_pool
from app.services.session_pipeline import complete_pending, complete_session
from app.services.topic_selector import select_questions
from app.services.training_session import SessionClosedError, SessionRegistry, TrainingSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/training", tags=["training"])

DEFAULT_COUNT = 10
MIN_COUNT, MAX_COUNT = 1, 30


# ── Request models ───────────────────────────────────────────────────

class StartSessionRequest(BaseModel):
    grade: Optional[int] = None
    difficulty: Optional[int] = None
    count: Optional[int] = None
    name: Optional[str] = None


class SelectRequest(BaseModel):
    option: int


class AnswerRequest(BaseModel):
    option: Optional[int] = None


# ── Helpers ──────────────────────────────────────────────────────────

def _clamp(value: Optional[int], low: int, high: int, default: int) -> int:
    if value is None:
        return default
    return max(low, min(high, value))


def _closed(e: SessionClosedError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


# ── Endpoints ────────────────────────────────────────────────────────

@router.post("/sessions", status_code=201)
async def start_session(
    body: StartSessionRequest,
    store: ScopedStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
):
    # Timed-out sessions must be stored before the difficulty and weak topic are read.
    registry.sweep()
    await complete_pending(store.db, registry.pending())

    grade = _clamp(body.grade, MIN_GRADE, MAX_GRADE, MIN_GRADE)
    if body.difficulty is None:
        difficulty = (await ts.load_difficulty_state(store)).level
    else:
        difficulty = clamp_difficulty(body.difficulty)
    count = _clamp(body.count, MIN_COUNT, MAX_COUNT, DEFAULT_COUNT)

    weak_topic = await ts.load_weak_topic(store, grade)
    rng = random.Random(settings.random_seed)
    questions = select_questions(get_question_pool(), grade, difficulty, count, weak_topic, rng)
    if not questions:
        raise HTTPException(status_code=404, detail="No questions for this grade and difficulty")

    if store.role == "student":
        await ts.init_profile_if_needed(store, name=body.name, grade=grade)

    session = registry.add(
        TrainingSession(questions, grade=grade, difficulty=difficulty, weak_topic=weak_topic, role=store.role)
    )
    logger.info(
        f"Session {session.session_id} started: grade={grade}, difficulty={difficulty}, "
        f"{len(questions)} questions, weak_topic={weak_topic}"
    )
    return session.snapshot()


@router.get("/sessions/{session_id}")
async def get_session_state(session: TrainingSession = Depends(get_session)):
    return session.snapshot()


@router.post("/sessions/{session_id}/select")
async def select_option(body: SelectRequest, session: TrainingSession = Depends(get_session)):
    session.catch_up()
    try:
        session.select(body.option)
    except SessionClosedError as e:
        raise _closed(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return session.snapshot()


@router.post("/sessions/{session_id}/answer")
async def answer_question(body: AnswerRequest, session: TrainingSession = Depends(get_session)):
    try:
        question, correct = session.submit(body.option)
    except SessionClosedError as e:
        raise _closed(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "question_id": question.id,
        "correct": correct,
        "correct_option": question.correct,
        "done": session.current_question is None,
        "session": session.snapshot(),
    }


@router.post("/sessions/{session_id}/finish", response_model=SessionResult)
async def finish_session(
    session: TrainingSession = Depends(get_session),
    store: ScopedStore = Depends(get_store),
):
    # Outcomes are written to the scope the session was started in
    return await complete_session(ScopedStore(store.db, session.role), session)
