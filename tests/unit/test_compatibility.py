"""
Tests for pairwise compatibility and connection prediction.
"""

import random
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from swipematch.services.compatibility import (
    CompatibilityScorer,
    is_active_now,
    orientation_allows,
)


def _profile(gender="male", orientation="straight", age=30, interests=None):
    return SimpleNamespace(
        gender=gender, orientation=orientation, age=age, interests=interests or []
    )


@pytest.mark.parametrize(
    "orientation, member_gender, candidate_gender, expected",
    [
        ("straight", "male", "female", True),
        ("straight", "male", "male", False),
        ("straight", "female", "male", True),
        ("gay", "male", "male", True),
        ("gay", "male", "female", False),
        ("lesbian", "female", "female", True),
        ("lesbian", "female", "male", False),
        ("bisexual", "male", "male", True),
        ("pansexual", "female", "non_binary", True),
    ],
)
def test_orientation_rule(orientation, member_gender, candidate_gender, expected):
    assert orientation_allows(orientation, member_gender, candidate_gender) is expected


def test_full_score_components():
    scorer = CompatibilityScorer()
    member = _profile("male", "straight", 30, ["music", "travel", "art"])
    creator = _profile("female", "straight", 28, ["music", "travel"])

    result = scorer.score(member, creator)

    # 50 base + 30 orientation + 2 * 5 interests + 10 close age
    assert result.score == 100
    assert result.orientation_match is True
    assert result.shared_interests == ["music", "travel"]
    assert result.age_difference == 2


def test_score_without_orientation_match_or_age_bonus():
    scorer = CompatibilityScorer()
    member = _profile("male", "straight", 40, ["music"])
    creator = _profile("male", "gay", 25, ["music"])

    result = scorer.score(member, creator)

    assert result.orientation_match is False
    assert result.score == 55


def test_near_age_bonus():
    scorer = CompatibilityScorer()
    result = scorer.score(_profile(age=30), _profile(gender="female", age=37))

    # 50 + 30 + 5
    assert result.score == 85


def test_score_is_capped_at_100():
    interests = ["a", "b", "c", "d", "e", "f"]
    scorer = CompatibilityScorer()
    result = scorer.score(
        _profile(age=30, interests=interests),
        _profile(gender="female", age=30, interests=interests),
    )

    assert result.score == 100


def test_missing_age_gives_no_age_bonus():
    scorer = CompatibilityScorer()
    result = scorer.score(_profile(age=None), _profile(gender="female", age=25))

    assert result.age_difference is None
    assert result.score == 80


def test_factors_round_trip_to_dict():
    scorer = CompatibilityScorer()
    result = scorer.score(_profile(interests=["x"]), _profile(gender="female", interests=["x"]))

    data = result.to_dict()
    assert data["score"] == result.score
    assert data["shared_interests"] == ["x"]
    assert set(result.factors()) == {"orientation_match", "shared_interests", "age_difference"}


def test_prediction_is_reproducible_with_seed():
    scorer = CompatibilityScorer()
    now = datetime(2026, 1, 1, 12, 0)
    compat = scorer.score(_profile(), _profile(gender="female"))

    first = scorer.predict_connection(compat, now - timedelta(minutes=5), now, random.Random(11))
    second = scorer.predict_connection(compat, now - timedelta(minutes=5), now, random.Random(11))

    assert first == second


def test_prediction_bounds_and_activity_bonus():
    scorer = CompatibilityScorer()
    now = datetime(2026, 1, 1, 12, 0)
    compat = scorer.score(_profile(age=50), _profile(gender="male", age=20))  # 50

    idle = scorer.predict_connection(compat, now - timedelta(hours=3), now, random.Random(3))
    active = scorer.predict_connection(compat, now - timedelta(minutes=3), now, random.Random(3))

    assert 35 <= idle <= 45
    assert active == pytest.approx(idle + 20)

    high = scorer.score(_profile(interests=list("abcdef")), _profile(gender="female", interests=list("abcdef")))
    capped = scorer.predict_connection(high, now, now, random.Random(1))
    assert capped <= 95


def test_is_active_now_window():
    now = datetime(2026, 1, 1, 12, 0)
    assert is_active_now(now - timedelta(minutes=14), now) is True
    assert is_active_now(now - timedelta(minutes=15), now) is False
    assert is_active_now(None, now) is False
