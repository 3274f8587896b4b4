"""Tests for weak-topic question selection."""

import random
from collections import Counter

from app.models.training import Question
from app.services import topic_selector


def _pool(topic_counts, grade=7, difficulty=3):
    pool, next_id = [], 1
    for topic, n in topic_counts.items():
        for _ in range(n):
            pool.append(Question(
                id=next_id, grade=grade, difficulty=difficulty, topic=topic,
                options=["a", "b"], correct=0,
            ))
            next_id += 1
    return pool


class TestAllowedDifficulties:

    def test_bands(self):
        assert topic_selector.allowed_difficulties(1) == {1}
        assert topic_selector.allowed_difficulties(3) == {2, 3}
        assert topic_selector.allowed_difficulties(5) == {4, 5}

    def test_every_level_has_a_band_within_range(self):
        for level in range(1, 6):
            band = topic_selector.allowed_difficulties(level)
            assert band
            assert band <= set(range(1, 6))


class TestSelectQuestions:

    def test_weak_topic_share(self):
        pool = _pool({"Алгебра": 3, "Геометрия": 20})
        picked = topic_selector.select_questions(pool, 7, 3, 10, "Алгебра", random.Random(1))
        counts = Counter(q.topic for q in picked)
        assert len(picked) == 10
        assert counts["Алгебра"] == 3
        assert counts["Геометрия"] == 7

    def test_short_other_partition_is_not_backfilled(self):
        pool = _pool({"Алгебра": 10, "Геометрия": 2})
        picked = topic_selector.select_questions(pool, 7, 3, 10, "Алгебра", random.Random(1))
        counts = Counter(q.topic for q in picked)
        assert counts["Алгебра"] == 6
        assert counts["Геометрия"] == 2
        assert len(picked) == 8

    def test_without_weak_topic_takes_count(self):
        pool = _pool({"Алгебра": 4, "Геометрия": 8})
        picked = topic_selector.select_questions(pool, 7, 3, 5, rng=random.Random(3))
        assert len(picked) == 5
        assert len({q.id for q in picked}) == 5

    def test_absent_weak_topic_behaves_like_none(self):
        pool = _pool({"Геометрия": 12})
        picked = topic_selector.select_questions(pool, 7, 3, 10, "Алгебра", random.Random(3))
        assert len(picked) == 10

    def test_filters_by_grade_and_band(self):
        pool = _pool({"Алгебра": 3}, grade=7, difficulty=3) + _pool({"Тригонометрия": 3}, grade=9)
        pool += _pool({"Логарифм": 3}, grade=7, difficulty=5)
        picked = topic_selector.select_questions(pool, 7, 3, 10, rng=random.Random(0))
        assert {q.topic for q in picked} == {"Алгебра"}

    def test_no_match_returns_empty(self):
        pool = _pool({"Алгебра": 5}, grade=7)
        assert topic_selector.select_questions(pool, 8, 3, 10) == []
        assert topic_selector.select_questions([], 7, 3, 10) == []

    def test_seeded_rng_is_reproducible(self):
        pool = _pool({"Алгебра": 6, "Геометрия": 14})
        a = topic_selector.select_questions(pool, 7, 3, 10, "Алгебра", random.Random(42))
        b = topic_selector.select_questions(pool, 7, 3, 10, "Алгебра", random.Random(42))
        assert [q.id for q in a] == [q.id for q in b]


class TestWeakestTopic:

    def test_most_wrong_answers(self):
        assert topic_selector.weakest_topic(["A", "B", "B", "C"]) == "B"

    def test_first_seen_topic_wins_tie(self):
        assert topic_selector.weakest_topic(["A", "B", "B", "A"]) == "A"
        # A reaches two misses first, but B was seen first
        assert topic_selector.weakest_topic(["B", "A", "A", "B"]) == "B"

    def test_no_wrong_topics(self):
        assert topic_selector.weakest_topic([]) is None
