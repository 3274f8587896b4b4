"""Tests for the timed session runner and the session registry."""

import asyncio
from contextlib import suppress

import pytest

from app.models.training import Question, SessionAggregate
from app.services import pai_calculator
from app.services.training_session import (
    COUNTDOWN_SECONDS,
    SessionClosedError,
    SessionRegistry,
    SessionStatus,
    TrainingSession,
    pressure_stage,
    run_countdown,
    stability_hint,
)


def _questions(*topics):
    return [
        Question(id=i + 1, grade=7, difficulty=3, topic=t, question=f"Q{i + 1}", options=["a", "b", "c"], correct=0)
        for i, t in enumerate(topics)
    ]


def _session(clock, role=None, topics=("Алгебра", "Геометрия", "Алгебра")):
    return TrainingSession(_questions(*topics), grade=7, difficulty=3, role=role, clock=clock)


class TestAnswerFlow:

    def test_submit_records_elapsed_and_ticks(self, clock):
        s = _session(clock)
        clock.advance(4.4)
        question, correct = s.submit(0)
        assert question.id == 1
        assert correct is True
        assert s.aggregate.question_times == [4]
        assert s.time_left == COUNTDOWN_SECONDS - 4
        assert s.current_index == 1

    def test_question_timer_resets(self, clock):
        s = _session(clock)
        clock.advance(3)
        s.submit(0)
        clock.advance(7.6)
        s.submit(1)
        assert s.aggregate.question_times == [3, 8]
        assert s.aggregate.wrong_topics == ["Геометрия"]

    def test_select_out_of_range(self, clock):
        s = _session(clock)
        with pytest.raises(ValueError):
            s.select(3)

    def test_submit_without_selection(self, clock):
        with pytest.raises(ValueError):
            _session(clock).submit()

    def test_all_questions_answered(self, clock):
        s = _session(clock, topics=("Алгебра",))
        s.submit(0)
        assert s.current_question is None
        with pytest.raises(SessionClosedError):
            s.submit(0)


class TestCountdown:

    def test_expiry_submits_pending_selection(self, clock):
        s = _session(clock)
        s.select(2)
        clock.advance(COUNTDOWN_SECONDS)
        s.catch_up()
        assert s.status == SessionStatus.TIME_UP
        assert s.aggregate.total_questions == 1
        assert s.aggregate.answer_history == [False]
        assert s.aggregate.question_times == [COUNTDOWN_SECONDS]
        assert s.aggregate.total_time_used_seconds == COUNTDOWN_SECONDS

    def test_expiry_records_miss(self, clock):
        s = _session(clock)
        clock.advance(10)
        s.submit(0)
        clock.advance(COUNTDOWN_SECONDS)
        s.catch_up()
        agg = s.aggregate
        assert agg.total_questions == 2
        assert agg.wrong_topics == ["Геометрия"]
        assert agg.question_times == [10, COUNTDOWN_SECONDS - 10]

    def test_terminal_session_ignores_ticks_and_finish(self, clock):
        s = _session(clock)
        clock.advance(COUNTDOWN_SECONDS + 30)
        s.catch_up()
        s.tick()
        assert s.time_left == 0
        assert s.finish() is False
        assert s.aggregate.total_questions == 1
        with pytest.raises(SessionClosedError):
            s.submit(0)

    def test_manual_finish_once(self, clock):
        s = _session(clock)
        clock.advance(2)
        s.submit(0)
        clock.advance(48.7)
        assert s.finish() is True
        assert s.status == SessionStatus.FINISHED
        assert s.aggregate.total_time_used_seconds == 50
        assert s.finish() is False

    def test_pressure_stage(self):
        assert pressure_stage(180) == 1
        assert pressure_stage(60) == 1
        assert pressure_stage(59) == 2
        assert pressure_stage(10) == 3
        assert pressure_stage(0) == 3


class TestLiveView:

    def test_snapshot_hides_answer_key(self, clock):
        snap = _session(clock).snapshot()
        assert snap["status"] == "active"
        assert "correct" not in snap["current_question"]
        assert snap["live_pai"] is None
        assert snap["pressure_stage"] == 1

    def test_live_pai_after_answers(self, clock):
        s = _session(clock)
        clock.advance(1)
        s.submit(0)
        clock.advance(1)
        s.submit(0)
        # A=100, T=100 (elapsed 2s), S=100
        assert s.snapshot()["live_pai"] == 100

    def test_live_pai_fixed_after_finish(self, clock):
        s = _session(clock)
        clock.advance(2)
        s.submit(0)
        clock.advance(2)
        s.submit(1)
        s.finish()
        finished = s.snapshot()["live_pai"]
        clock.advance(10_000)
        assert s.snapshot()["live_pai"] == finished
        assert finished == pai_calculator.compute(s.aggregate)

    def test_stability_hint(self):
        steady = SessionAggregate(total_questions=3, correct_count=3, question_times=[5, 6, 5], answer_history=[True] * 3)
        erratic = SessionAggregate(total_questions=3, correct_count=3, question_times=[2, 3, 40], answer_history=[True] * 3)
        assert stability_hint(steady) is False
        assert stability_hint(erratic) is True


class TestRegistry:

    def test_one_active_session_per_scope(self, clock):
        registry = SessionRegistry()
        first = registry.add(_session(clock, role="student"))
        second = registry.add(_session(clock, role="student"))
        teacher = registry.add(_session(clock, role="teacher"))
        assert registry.get(first.session_id) is None
        assert registry.get(second.session_id) is second
        assert registry.get(teacher.session_id) is teacher

    def test_sweep_expires_sessions(self, clock):
        registry = SessionRegistry()
        s = registry.add(_session(clock))
        clock.advance(COUNTDOWN_SECONDS)
        registry.sweep()
        assert s.status == SessionStatus.TIME_UP
        assert registry.active() == []

    def test_pending_lists_unstored_ended_sessions(self, clock):
        registry = SessionRegistry()
        s = registry.add(_session(clock))
        assert registry.pending() == []
        clock.advance(COUNTDOWN_SECONDS)
        registry.sweep()
        assert registry.pending() == [s]
        s.result = "stored"
        assert registry.pending() == []


class TestCountdownLoop:

    @staticmethod
    def _run(registry, on_expired):
        async def main():
            task = asyncio.create_task(run_countdown(registry, interval=0.005, on_expired=on_expired))
            await asyncio.sleep(0.05)
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        asyncio.run(main())

    def test_expired_sessions_handed_over_once(self, clock):
        registry = SessionRegistry()
        s = registry.add(_session(clock))
        clock.advance(COUNTDOWN_SECONDS)
        handed = []

        async def on_expired(sessions):
            handed.extend(sessions)
            for session in sessions:
                session.result = "stored"

        self._run(registry, on_expired)
        assert s.status == SessionStatus.TIME_UP
        assert handed == [s]

    def test_failing_callback_keeps_loop_running(self, clock):
        registry = SessionRegistry()
        registry.add(_session(clock))
        clock.advance(COUNTDOWN_SECONDS)
        calls = []

        async def on_expired(sessions):
            calls.append(len(sessions))
            raise RuntimeError("database unavailable")

        self._run(registry, on_expired)
        assert len(calls) > 1
        assert set(calls) == {1}
