"""Schemas and helpers shared by the API routers."""

import uuid
from typing import Literal

from fastapi import HTTPException
from pydantic import BaseModel

from swipematch.models import Connection
from swipematch.services.actors import Actor, CreatorActor, MemberActor
from swipematch.services.signals import LoggingSignalSink, SignalSink


class ActorRef(BaseModel):
    """Which side of a connection is acting."""

    actor_type: Literal["member", "creator"]
    actor_id: str


class ConnectionResponse(BaseModel):
    """Connection summary."""

    id: str
    creator_id: str
    member_id: str
    source: str
    status: str
    connected_at: str | None
    disconnected_at: str | None
    member_swipe_direction: str | None
    creator_swipe_direction: str | None
    super_like: bool
    compatibility_score: int | None
    messages_from_member: int
    messages_from_creator: int
    unlock_count: int
    tip_total: float
    total_revenue: float
    refunded_total: float
    transaction_count: int
    spending_tier: str
    engagement_level: float
    health_status: str
    churn_risk: int
    days_since_last_interaction: int
    last_active_at: str | None


def parse_uuid(value: str, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {field} format")


def parse_actor(ref: ActorRef) -> Actor:
    actor_id = parse_uuid(ref.actor_id, "actor_id")
    if ref.actor_type == "member":
        return MemberActor(actor_id)
    return CreatorActor(actor_id)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def connection_to_response(connection: Connection) -> ConnectionResponse:
    """Convert Connection model to response."""
    return ConnectionResponse(
        id=str(connection.id),
        creator_id=str(connection.creator_id),
        member_id=str(connection.member_id),
        source=connection.source,
        status=connection.status,
        connected_at=_iso(connection.connected_at),
        disconnected_at=_iso(connection.disconnected_at),
        member_swipe_direction=connection.member_swipe_direction,
        creator_swipe_direction=connection.creator_swipe_direction,
        super_like=connection.member_super_like or False,
        compatibility_score=connection.compatibility_score,
        messages_from_member=connection.messages_from_member or 0,
        messages_from_creator=connection.messages_from_creator or 0,
        unlock_count=connection.unlock_count or 0,
        tip_total=connection.tip_total or 0,
        total_revenue=connection.total_revenue or 0,
        refunded_total=connection.refunded_total or 0,
        transaction_count=connection.transaction_count or 0,
        spending_tier=connection.spending_tier,
        engagement_level=connection.engagement_level or 0,
        health_status=connection.health_status,
        churn_risk=connection.churn_risk or 0,
        days_since_last_interaction=connection.days_since_last_interaction or 0,
        last_active_at=_iso(connection.last_active_at),
    )


_signal_sink = LoggingSignalSink()


def get_signal_sink() -> SignalSink:
    """Dependency for the outbound signal sink."""
    return _signal_sink
