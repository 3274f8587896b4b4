"""Timed training sessions: countdown, answer flow and the active-session registry.

A session counts down from COUNTDOWN_SECONDS one tick per second and
reaches exactly one terminal state: TIME_UP (countdown expired) or
FINISHED (the student ended it). On expiry a pending selection is
submitted, or the current question is recorded as a miss, before the
aggregate is finalized.

Ticks are applied lazily through catch_up(), so request handlers and the
background sweeper see the same clock.
"""

import asyncio
import logging
import math
import time
import uuid
from enum import Enum
from typing import Awaitable, Callable, Optional

from app.models.training import Question, SessionAggregate, round_half_up
from app.services import pai_calculator
from app.services.era_classifier import PRESSURE_STDDEV_THRESHOLD, HIGH_ACCURACY_PERCENT, population_std_dev
from app.services.session_recorder import SessionRecorder

logger = logging.getLogger(__name__)

COUNTDOWN_SECONDS = 3 * 60
LOW_TIME_SECONDS = 60
CRITICAL_TIME_SECONDS = 10


class SessionClosedError(RuntimeError):
    """Raised when answering in a session that already reached its terminal state."""


class SessionStatus(str, Enum):
    ACTIVE = "active"
    TIME_UP = "time_up"
    FINISHED = "finished"


def pressure_stage(time_left: int) -> int:
    if time_left <= CRITICAL_TIME_SECONDS:
        return 3
    if time_left < LOW_TIME_SECONDS:
        return 2
    return 1


def stability_hint(aggregate: SessionAggregate) -> bool:
    """Live hint: accurate so far but answer times fluctuate widely."""
    times = aggregate.question_times
    if len(times) < 3 or aggregate.total_questions == 0:
        return False
    accuracy = aggregate.correct_count / aggregate.total_questions * 100
    std_dev = population_std_dev(times, sum(times) / len(times))
    return accuracy > HIGH_ACCURACY_PERCENT and std_dev > PRESSURE_STDDEV_THRESHOLD


class TrainingSession:
    def __init__(
        self,
        questions: list[Question],
        grade: int,
        difficulty: int,
        weak_topic: Optional[str] = None,
        role: Optional[str] = None,
        session_id: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        countdown_seconds: int = COUNTDOWN_SECONDS,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.questions = questions
        self.grade = grade
        self.difficulty = difficulty
        self.weak_topic = weak_topic
        self.role = role
        self.clock = clock
        self.recorder = SessionRecorder(grade=grade, difficulty=difficulty)

        self.started_at = clock()
        self.question_started_at = self.started_at
        self._last_tick_at = self.started_at
        self.time_left = countdown_seconds
        self.current_index = 0
        self.selected_option: Optional[int] = None
        self.status = SessionStatus.ACTIVE
        # Filled in once by the end-of-session pipeline
        self.result = None
        self.completion_lock = asyncio.Lock()

    @property
    def aggregate(self) -> SessionAggregate:
        return self.recorder.aggregate

    @property
    def is_terminal(self) -> bool:
        return self.status != SessionStatus.ACTIVE

    @property
    def current_question(self) -> Optional[Question]:
        if self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    def _require_open(self) -> Question:
        if self.is_terminal:
            raise SessionClosedError(f"Session {self.session_id} is {self.status.value}")
        question = self.current_question
        if question is None:
            raise SessionClosedError("All questions answered")
        return question

    # ── Answer flow ──────────────────────────────────────────────────

    def select(self, option: int) -> None:
        question = self._require_open()
        if not 0 <= option < len(question.options):
            raise ValueError(f"Option {option} out of range for question {question.id}")
        self.selected_option = option

    def submit(self, option: Optional[int] = None) -> tuple[Question, bool]:
        """Record the selected option for the current question and move on."""
        self.catch_up()
        question = self._require_open()
        if option is not None:
            self.select(option)
        if self.selected_option is None:
            raise ValueError("No option selected")
        return self._submit_at(question, self.clock())

    def _submit_at(self, question: Question, at: float) -> tuple[Question, bool]:
        correct = self.selected_option == question.correct
        self.recorder.record_answer(question.topic, correct, self._elapsed_on_question(at))
        self._advance(at)
        return question, correct

    def _elapsed_on_question(self, at: float) -> int:
        return max(0, round_half_up(at - self.question_started_at))

    def _advance(self, at: float) -> None:
        self.current_index += 1
        self.selected_option = None
        self.question_started_at = at

    # ── Countdown ────────────────────────────────────────────────────

    def tick(self, at: Optional[float] = None) -> None:
        if self.is_terminal:
            return
        at = self.clock() if at is None else at
        self.time_left = max(0, self.time_left - 1)
        if self.time_left == 0:
            self._expire(at)

    def catch_up(self, now: Optional[float] = None) -> None:
        """Apply every whole-second tick due since the last one."""
        now = self.clock() if now is None else now
        due = math.floor(now - self._last_tick_at)
        for _ in range(max(0, due)):
            if self.is_terminal:
                break
            self._last_tick_at += 1
            self.tick(at=self._last_tick_at)

    def _expire(self, at: float) -> None:
        question = self.current_question
        if question is not None:
            if self.selected_option is not None:
                self._submit_at(question, at)
            else:
                self.recorder.record_miss(question.topic, self._elapsed_on_question(at))
                self._advance(at)
        self.recorder.finalize(math.floor(at - self.started_at))
        self.status = SessionStatus.TIME_UP
        logger.info(f"Session {self.session_id} timed out after {self.aggregate.total_questions} questions")

    def finish(self) -> bool:
        """End the session manually. Returns False if it had already ended."""
        self.catch_up()
        if self.is_terminal:
            return False
        self.recorder.finalize(math.floor(self.clock() - self.started_at))
        self.status = SessionStatus.FINISHED
        logger.info(f"Session {self.session_id} finished with {self.aggregate.total_questions} questions")
        return True

    # ── Live view ────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        self.catch_up()
        agg = self.aggregate
        question = None if self.is_terminal else self.current_question
        if agg.is_finalized:
            pai = pai_calculator.compute(agg)
        else:
            pai = pai_calculator.preview(agg, self.clock() - self.started_at)
        return {
            "session_id": self.session_id,
            "status": self.status.value,
            "grade": self.grade,
            "difficulty": self.difficulty,
            "weak_topic": self.weak_topic,
            "time_left": self.time_left,
            "pressure_stage": pressure_stage(self.time_left),
            "live_pai": pai,
            "stability_hint": stability_hint(agg),
            "question_index": self.current_index,
            "question_count": len(self.questions),
            "current_question": question.public() if question else None,
            "selected_option": self.selected_option,
            "total_questions": agg.total_questions,
            "correct_count": agg.correct_count,
            "wrong_count": agg.wrong_count,
            "max_streak": agg.max_streak,
        }


class SessionRegistry:
    """In-memory sessions; at most one active session per role scope."""

    def __init__(self):
        self._sessions: dict[str, TrainingSession] = {}
        self._by_scope: dict[Optional[str], str] = {}

    def add(self, session: TrainingSession) -> TrainingSession:
        replaced = self._by_scope.get(session.role)
        if replaced is not None:
            self._sessions.pop(replaced, None)
            logger.info(f"Session {replaced} replaced by {session.session_id}")
        self._sessions[session.session_id] = session
        self._by_scope[session.role] = session.session_id
        return session

    def get(self, session_id: str) -> Optional[TrainingSession]:
        return self._sessions.get(session_id)

    def active(self) -> list[TrainingSession]:
        return [s for s in self._sessions.values() if not s.is_terminal]

    def pending(self) -> list[TrainingSession]:
        """Ended sessions whose outcome has not been persisted yet."""
        return [s for s in self._sessions.values() if s.is_terminal and s.result is None]

    def sweep(self) -> None:
        for session in self.active():
            session.catch_up()


async def run_countdown(
    registry: SessionRegistry,
    interval: float = 1.0,
    on_expired: Optional[Callable[[list[TrainingSession]], Awaitable[None]]] = None,
) -> None:
    """Background loop advancing every active countdown until cancelled.

    Sessions that ended without being completed are handed to `on_expired`.
    """
    while True:
        registry.sweep()
        pending = registry.pending()
        if on_expired is not None and pending:
            try:
                await on_expired(pending)
            except Exception:
                logger.exception(f"Could not complete {len(pending)} expired session(s)")
        await asyncio.sleep(interval)
