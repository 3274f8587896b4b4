"""Tests for per-question event accumulation."""

import pytest
from pydantic import ValidationError

from app.models.training import QuestionEvent, SessionAggregate
from app.services.session_recorder import SessionRecorder


class TestSessionRecorder:

    def test_counts_and_streak(self):
        rec = SessionRecorder(grade=7, difficulty=3)
        for correct in [True, True, False, True, True, True]:
            rec.record_answer("Алгебра", correct, 4)
        agg = rec.aggregate
        assert agg.total_questions == 6
        assert agg.correct_count == 5
        assert agg.wrong_count == 1
        assert agg.max_streak == 3
        assert agg.correct_count + agg.wrong_count == agg.total_questions
        assert len(agg.question_times) == len(agg.answer_history) == 6

    def test_wrong_topics_collected_in_order(self):
        rec = SessionRecorder(grade=5, difficulty=2)
        rec.record_answer("Бөлшектер", False, 3)
        rec.record_answer("Натурал сандар", True, 3)
        rec.record_miss("Ондық бөлшектер", 12)
        assert rec.aggregate.wrong_topics == ["Бөлшектер", "Ондық бөлшектер"]
        assert rec.aggregate.answer_history == [False, True, False]

    def test_negative_elapsed_clamped(self):
        rec = SessionRecorder(grade=5, difficulty=2)
        rec.record_answer("Бөлшектер", True, -2)
        assert rec.aggregate.question_times == [0.0]

    def test_events_are_immutable(self):
        event = QuestionEvent(topic="Алгебра", is_correct=True, elapsed_seconds=2)
        with pytest.raises(Exception):
            event.is_correct = False

    def test_finalized_once(self):
        rec = SessionRecorder(grade=5, difficulty=2)
        rec.record_answer("Бөлшектер", True, 3)
        assert rec.finalize(42) is not None
        assert rec.finalize(99) is None
        assert rec.aggregate.total_time_used_seconds == 42

    def test_no_events_after_finalize(self):
        rec = SessionRecorder(grade=5, difficulty=2)
        rec.finalize(10)
        with pytest.raises(RuntimeError):
            rec.record_answer("Бөлшектер", True, 3)


class TestSessionAggregateInvariants:

    def test_counts_must_add_up(self):
        with pytest.raises(ValidationError):
            SessionAggregate(total_questions=2, correct_count=2, wrong_count=1,
                             question_times=[1, 1], answer_history=[True, True])

    def test_one_time_and_answer_per_question(self):
        with pytest.raises(ValidationError):
            SessionAggregate(total_questions=2, correct_count=2, question_times=[1], answer_history=[True, True])
        with pytest.raises(ValidationError):
            SessionAggregate(total_questions=2, correct_count=2, question_times=[1, 1], answer_history=[True])

    def test_streak_within_total(self):
        with pytest.raises(ValidationError):
            SessionAggregate(total_questions=1, correct_count=1, max_streak=2,
                             question_times=[1], answer_history=[True])

    def test_recorded_aggregate_revalidates(self):
        rec = SessionRecorder(grade=7, difficulty=3)
        for correct in [True, False, True]:
            rec.record_answer("Алгебра", correct, 5)
        rec.finalize(15)
        again = SessionAggregate.model_validate(rec.aggregate.model_dump())
        assert again == rec.aggregate
