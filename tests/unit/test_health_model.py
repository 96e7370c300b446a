"""
Tests for the relationship health model and relationship strength.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from swipematch.models import HealthStatus
from swipematch.services.health import (
    assess_health,
    is_health_stale,
    reference_time,
    relationship_strength,
)

NOW = datetime(2026, 3, 1, 12, 0)

ORDER = [
    HealthStatus.THRIVING,
    HealthStatus.ACTIVE,
    HealthStatus.COOLING,
    HealthStatus.DORMANT,
    HealthStatus.AT_RISK,
]


@pytest.mark.parametrize(
    "days, status, risk",
    [
        (0, HealthStatus.THRIVING, 0),
        (2, HealthStatus.THRIVING, 0),
        (3, HealthStatus.ACTIVE, 10),
        (6, HealthStatus.ACTIVE, 10),
        (7, HealthStatus.COOLING, 40),
        (13, HealthStatus.COOLING, 40),
        (14, HealthStatus.DORMANT, 70),
        (29, HealthStatus.DORMANT, 70),
        (30, HealthStatus.AT_RISK, 90),
        (400, HealthStatus.AT_RISK, 90),
    ],
)
def test_health_bands(days, status, risk):
    assessment = assess_health(NOW - timedelta(days=days), NOW)

    assert assessment.status == status
    assert assessment.churn_risk == risk
    assert assessment.days_since_last_interaction == days


def test_partial_days_round_down():
    assessment = assess_health(NOW - timedelta(days=2, hours=23), NOW)
    assert assessment.status == HealthStatus.THRIVING
    assert assessment.days_since_last_interaction == 2


def test_health_decay_is_monotonic():
    """With no new engagement, health never improves as time passes."""
    last = NOW
    previous = assess_health(last, last)
    for hours in range(1, 24 * 60, 7):
        current = assess_health(last, last + timedelta(hours=hours))
        assert current.churn_risk >= previous.churn_risk
        assert ORDER.index(current.status) >= ORDER.index(previous.status)
        previous = current


def test_missing_history_is_at_risk():
    assessment = assess_health(None, NOW)
    assert assessment.status == HealthStatus.AT_RISK
    assert assessment.churn_risk == 90


def test_reference_time_falls_back():
    created = NOW - timedelta(days=40)
    connected = NOW - timedelta(days=20)
    connection = SimpleNamespace(last_active_at=None, connected_at=connected, created_at=created)
    assert reference_time(connection) == connected

    connection.connected_at = None
    assert reference_time(connection) == created


def test_is_health_stale():
    connection = SimpleNamespace(health_computed_at=None)
    assert is_health_stale(connection, NOW, timedelta(hours=6))

    connection.health_computed_at = NOW - timedelta(hours=1)
    assert not is_health_stale(connection, NOW, timedelta(hours=6))

    connection.health_computed_at = NOW - timedelta(hours=7)
    assert is_health_stale(connection, NOW, timedelta(hours=6))


def _strength_fixture(**overrides):
    values = dict(
        messages_from_member=0,
        total_revenue=0.0,
        unlock_count=0,
        last_active_at=None,
        tip_count=0,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_relationship_strength_empty():
    assert relationship_strength(_strength_fixture(), NOW) == 0


def test_relationship_strength_weights():
    connection = _strength_fixture(
        messages_from_member=50,  # 0.5 * 20 = 10
        total_revenue=200.0,  # capped: 30
        unlock_count=5,  # 0.25 * 20 = 5
        last_active_at=NOW - timedelta(days=2),  # 20
        tip_count=1,  # 10
    )
    assert relationship_strength(connection, NOW) == pytest.approx(75)


def test_relationship_strength_maximum():
    connection = _strength_fixture(
        messages_from_member=500,
        total_revenue=5000.0,
        unlock_count=100,
        last_active_at=NOW,
        tip_count=3,
    )
    assert relationship_strength(connection, NOW) == pytest.approx(100)
