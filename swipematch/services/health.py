"""Relationship health model.

Health is a pure function of how long ago the pair last interacted:

    days idle   status     churn risk
    < 3         thriving    0
    3 - 6       active     10
    7 - 13      cooling    40
    14 - 29     dormant    70
    >= 30       at_risk    90
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from swipematch.models import Connection, HealthStatus

# (exclusive upper bound in days, status, churn risk)
HEALTH_BANDS: list[tuple[int, HealthStatus, int]] = [
    (3, HealthStatus.THRIVING, 0),
    (7, HealthStatus.ACTIVE, 10),
    (14, HealthStatus.COOLING, 40),
    (30, HealthStatus.DORMANT, 70),
]
STALE_HEALTH = (HealthStatus.AT_RISK, 90)

CHURN_RISK = {status: risk for _, status, risk in HEALTH_BANDS}
CHURN_RISK[STALE_HEALTH[0]] = STALE_HEALTH[1]

AT_RISK_THRESHOLD = 70


@dataclass(frozen=True)
class HealthAssessment:
    status: HealthStatus
    churn_risk: int
    days_since_last_interaction: int


def reference_time(connection: Connection) -> datetime | None:
    """Most recent interaction, falling back to when the pair connected or was created."""
    return connection.last_active_at or connection.connected_at or connection.created_at


def assess_health(last_interaction: datetime | None, now: datetime) -> HealthAssessment:
    """Map the idle period to a health bucket. Missing history counts as at risk."""
    if last_interaction is None:
        status, risk = STALE_HEALTH
        return HealthAssessment(status, risk, 0)

    days = max(0, (now - last_interaction) // timedelta(days=1))
    for upper, status, risk in HEALTH_BANDS:
        if days < upper:
            return HealthAssessment(status, risk, days)
    status, risk = STALE_HEALTH
    return HealthAssessment(status, risk, days)


def apply_health(connection: Connection, now: datetime) -> HealthAssessment:
    """Recompute and store the derived health fields on a connection."""
    assessment = assess_health(reference_time(connection), now)
    connection.health_status = assessment.status.value
    connection.churn_risk = assessment.churn_risk
    connection.days_since_last_interaction = assessment.days_since_last_interaction
    connection.health_computed_at = now
    return assessment


def is_health_stale(connection: Connection, now: datetime, max_age: timedelta) -> bool:
    computed = connection.health_computed_at
    return computed is None or now - computed > max_age


def relationship_strength(connection: Connection, now: datetime) -> float:
    """
    Weighted 0-100 composite of how invested the member is in this creator.

    Weights: member messages 20, spend 30, unlocks 20, activity in the last
    7 days 20, any tip 10.
    """
    messages = min((connection.messages_from_member or 0) / 100, 1) * 0.2
    spend = min(max(connection.total_revenue or 0, 0) / 100, 1) * 0.3
    unlocks = min((connection.unlock_count or 0) / 20, 1) * 0.2
    recent = (
        connection.last_active_at is not None
        and now - connection.last_active_at < timedelta(days=7)
    )
    recency = 0.2 if recent else 0
    tips = 0.1 if (connection.tip_count or 0) > 0 else 0
    return round((messages + spend + unlocks + recency + tips) * 100, 2)
