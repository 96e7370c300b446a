"""Read-side queries over connections.

Messaging gates, creator CRM lists and the connection analytics dashboard.
Queries that filter on health refresh stale health fields first so an idle
pair shows up as at-risk without waiting for its next write.
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

import pandas as pd
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.config import settings
from swipematch.database import utcnow
from swipematch.errors import ConstraintViolation
from swipematch.models import (
    ACCEPTED_SWIPES,
    Connection,
    ConnectionStatus,
    HealthStatus,
)
from swipematch.observability import get_logger
from swipematch.services.actors import Actor, CreatorActor, MemberActor
from swipematch.services.health import (
    AT_RISK_THRESHOLD,
    apply_health,
    relationship_strength,
)
from swipematch.services.versioning import load_connection, mutate_connection

log = get_logger(__name__)

HEALTHY = (HealthStatus.THRIVING.value, HealthStatus.ACTIVE.value)
NEW_CONNECTION_WINDOW = timedelta(days=7)


class ConnectionFilter(str, Enum):
    """List filters for a participant's connections."""

    ALL = "all"
    ACTIVE = "active"
    NEW = "new"
    AT_RISK = "at_risk"


def _rate(numerator: int, denominator: int) -> float:
    """Percentage, 0 when there is nothing to convert from."""
    if denominator == 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


def daily_trends(
    connections: list[Connection], start: datetime, end: datetime
) -> list[dict[str, Any]]:
    """
    Per-day swipe, right-swipe and connection counts between start and end.

    Days with no activity are included with zero counts.
    """
    frame = pd.DataFrame(
        [
            {
                "created_at": c.created_at,
                "connected_at": c.connected_at,
                "accepted": c.member_swipe_direction in ACCEPTED_SWIPES,
            }
            for c in connections
        ],
        columns=["created_at", "connected_at", "accepted"],
    )
    frame["created_at"] = pd.to_datetime(frame["created_at"])
    frame["connected_at"] = pd.to_datetime(frame["connected_at"])
    frame["accepted"] = frame["accepted"].astype(int)

    days = pd.date_range(
        pd.Timestamp(start).normalize(), pd.Timestamp(end).normalize(), freq="D"
    )
    by_created = frame.groupby(frame["created_at"].dt.normalize())
    connected = frame.dropna(subset=["connected_at"])
    by_connected = connected.groupby(connected["connected_at"].dt.normalize())

    trends = pd.DataFrame(index=days)
    trends["swipes"] = by_created.size().reindex(days, fill_value=0)
    trends["right_swipes"] = by_created["accepted"].sum().reindex(days, fill_value=0)
    trends["connections"] = by_connected.size().reindex(days, fill_value=0)
    trends = trends.fillna(0).astype(int)

    return [
        {
            "date": day.date().isoformat(),
            "swipes": int(row["swipes"]),
            "right_swipes": int(row["right_swipes"]),
            "connections": int(row["connections"]),
        }
        for day, row in trends.iterrows()
    ]


class ConnectionQueryService:
    """Read-mostly queries. The only writes are lazy health refreshes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def refresh_stale_health(
        self,
        creator_id: uuid.UUID | None = None,
        member_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> int:
        """
        Recompute health on connections whose health is older than the freshness window.

        Returns:
            Number of connections refreshed. Rows still contended after the
            retry bound keep their stored health.
        """
        now = now or utcnow()
        cutoff = now - timedelta(hours=settings.health_freshness_hours)

        query = select(Connection.id).where(
            or_(
                Connection.health_computed_at.is_(None),
                Connection.health_computed_at < cutoff,
            )
        )
        if creator_id is not None:
            query = query.where(Connection.creator_id == creator_id)
        if member_id is not None:
            query = query.where(Connection.member_id == member_id)

        result = await self.db.execute(query)
        stale_ids = list(result.scalars().all())
        refreshed = 0
        for connection_id in stale_ids:
            try:
                await mutate_connection(
                    self.db, connection_id, lambda connection: apply_health(connection, now)
                )
            except ConstraintViolation:
                # Busy row; readers see its last stored health
                log.warning("health_refresh_skipped", connection_id=connection_id)
                continue
            refreshed += 1

        if refreshed:
            log.info("health_refreshed", count=refreshed, creator_id=creator_id)
        return refreshed

    async def can_message(self, connection_id: uuid.UUID) -> bool:
        connection = await load_connection(self.db, connection_id)
        return connection.status == ConnectionStatus.CONNECTED.value

    async def top_spenders(self, creator_id: uuid.UUID, limit: int = 10) -> list[Connection]:
        """Connections with revenue, highest total first."""
        result = await self.db.execute(
            select(Connection)
            .where(Connection.creator_id == creator_id, Connection.total_revenue > 0)
            .order_by(Connection.total_revenue.desc(), Connection.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def at_risk(self, creator_id: uuid.UUID, now: datetime | None = None) -> list[Connection]:
        """Connections with churn risk of 70 or more, worst first."""
        await self.refresh_stale_health(creator_id=creator_id, now=now)
        result = await self.db.execute(
            select(Connection)
            .where(
                Connection.creator_id == creator_id,
                Connection.churn_risk >= AT_RISK_THRESHOLD,
            )
            .order_by(Connection.churn_risk.desc(), Connection.last_active_at)
        )
        return list(result.scalars().all())

    async def relationship_strength(
        self, connection_id: uuid.UUID, now: datetime | None = None
    ) -> float:
        connection = await load_connection(self.db, connection_id)
        return relationship_strength(connection, now or utcnow())

    async def pending_likes(
        self, creator_id: uuid.UUID, limit: int = 20, offset: int = 0
    ) -> list[Connection]:
        """Members who liked the creator and are waiting for a response. Super likes first."""
        result = await self.db.execute(
            select(Connection)
            .where(
                Connection.creator_id == creator_id,
                Connection.status == ConnectionStatus.PENDING.value,
                Connection.member_swipe_direction.in_(ACCEPTED_SWIPES),
                Connection.creator_swipe_direction.is_(None),
            )
            .order_by(
                Connection.member_super_like.desc(),
                Connection.member_swiped_at.desc(),
            )
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_connections(
        self,
        actor: Actor,
        connection_filter: ConnectionFilter = ConnectionFilter.ALL,
        limit: int = 20,
        offset: int = 0,
        now: datetime | None = None,
    ) -> list[Connection]:
        """
        A participant's connections, newest first.

        Creators see incoming likes (pending) and connected pairs; members
        see connected pairs only.
        """
        now = now or utcnow()

        if isinstance(actor, CreatorActor):
            query = select(Connection).where(
                Connection.creator_id == actor.creator_id,
                or_(
                    Connection.status == ConnectionStatus.CONNECTED.value,
                    and_(
                        Connection.status == ConnectionStatus.PENDING.value,
                        Connection.member_swipe_direction.in_(ACCEPTED_SWIPES),
                    ),
                ),
            )
        elif isinstance(actor, MemberActor):
            query = select(Connection).where(
                Connection.member_id == actor.member_id,
                Connection.status == ConnectionStatus.CONNECTED.value,
            )
        else:
            raise TypeError(f"Unknown actor {actor!r}")

        if connection_filter in (ConnectionFilter.ACTIVE, ConnectionFilter.AT_RISK):
            if isinstance(actor, CreatorActor):
                await self.refresh_stale_health(creator_id=actor.creator_id, now=now)
            else:
                await self.refresh_stale_health(member_id=actor.member_id, now=now)

        if connection_filter == ConnectionFilter.ACTIVE:
            query = query.where(Connection.health_status.in_(HEALTHY))
        elif connection_filter == ConnectionFilter.NEW:
            query = query.where(Connection.connected_at >= now - NEW_CONNECTION_WINDOW)
        elif connection_filter == ConnectionFilter.AT_RISK:
            query = query.where(Connection.churn_risk >= AT_RISK_THRESHOLD)

        result = await self.db.execute(
            query.order_by(Connection.created_at.desc(), Connection.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def connection_analytics(
        self,
        creator_id: uuid.UUID,
        period_days: int = 30,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Swipe funnel, revenue and engagement summary for a creator.

        Args:
            creator_id: Creator to report on
            period_days: Look-back for swipes received
            now: Report time

        Returns:
            Dict with overview, conversion_rates, revenue, engagement, trends
        """
        now = now or utcnow()
        period_start = now - timedelta(days=period_days)
        await self.refresh_stale_health(creator_id=creator_id, now=now)

        result = await self.db.execute(
            select(Connection).where(
                Connection.creator_id == creator_id,
                Connection.created_at >= period_start,
            )
        )
        in_period = list(result.scalars().all())

        result = await self.db.execute(
            select(Connection).where(
                Connection.creator_id == creator_id,
                Connection.status == ConnectionStatus.CONNECTED.value,
                Connection.health_status.in_(HEALTHY),
            )
        )
        active = list(result.scalars().all())

        right_swipes = [c for c in in_period if c.member_swipe_direction in ACCEPTED_SWIPES]
        connected = [c for c in in_period if c.status == ConnectionStatus.CONNECTED.value]
        messaged = [c for c in connected if c.messages_from_member > 0]
        purchased = [c for c in connected if c.total_revenue > 0]

        active_revenue = sum(c.total_revenue for c in active)
        top = await self.top_spenders(creator_id, limit=5)

        responders = [c for c in active if c.messages_from_member > 0]
        timed = [c for c in active if c.creator_responses > 0]

        return {
            "period_days": period_days,
            "overview": {
                "total_swipes_received": len(in_period),
                "right_swipes": len(right_swipes),
                "super_likes": len([c for c in in_period if c.member_super_like]),
                "connections": len(connected),
                "active_connections": len(active),
            },
            "conversion_rates": {
                "swipe_to_connection": _rate(len(connected), len(right_swipes)),
                "connection_to_message": _rate(len(messaged), len(connected)),
                "connection_to_purchase": _rate(len(purchased), len(connected)),
            },
            "revenue": {
                "from_connections": round(active_revenue, 2),
                "average_per_connection": round(active_revenue / len(active), 2) if active else 0.0,
                "top_connections": [
                    {"connection_id": str(c.id), "total_revenue": c.total_revenue} for c in top
                ],
            },
            "engagement": {
                "avg_messages_per_connection": round(
                    sum(c.messages_from_member + c.messages_from_creator for c in active)
                    / len(active),
                    2,
                )
                if active
                else 0.0,
                "response_rate": round(
                    sum(c.response_rate for c in responders) / len(responders), 2
                )
                if responders
                else 0.0,
                "avg_response_minutes": round(
                    sum(c.avg_response_minutes for c in timed) / len(timed), 2
                )
                if timed
                else 0.0,
            },
            "trends": {"daily": daily_trends(in_period, period_start, now)},
        }
