"""Reporting endpoints for messaging gates and creator dashboards."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.api.common import ConnectionResponse, connection_to_response, parse_uuid
from swipematch.database import get_db
from swipematch.services.actors import CreatorActor, MemberActor
from swipematch.services.reporting import ConnectionFilter, ConnectionQueryService

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


# ============ Schemas ============


class CanMessageResponse(BaseModel):
    connection_id: str
    can_message: bool


class StrengthResponse(BaseModel):
    connection_id: str
    relationship_strength: float


class PendingLike(BaseModel):
    """A member waiting on the creator's decision."""

    connection_id: str
    member_id: str
    super_like: bool
    liked_at: str | None
    viewed_photos: int | None
    read_bio: bool
    compatibility_score: int | None


# ============ Endpoints ============


@router.get("/connections/{connection_id}/can-message", response_model=CanMessageResponse)
async def can_message(
    connection_id: str,
    db: AsyncSession = Depends(get_db),
) -> CanMessageResponse:
    """Whether private messaging is open on this connection."""
    connection_uuid = parse_uuid(connection_id, "connection_id")
    allowed = await ConnectionQueryService(db).can_message(connection_uuid)
    return CanMessageResponse(connection_id=connection_id, can_message=allowed)


@router.get("/connections/{connection_id}/strength", response_model=StrengthResponse)
async def relationship_strength(
    connection_id: str,
    db: AsyncSession = Depends(get_db),
) -> StrengthResponse:
    connection_uuid = parse_uuid(connection_id, "connection_id")
    strength = await ConnectionQueryService(db).relationship_strength(connection_uuid)
    return StrengthResponse(connection_id=connection_id, relationship_strength=strength)


@router.get("/creator/{creator_id}/top-spenders", response_model=list[ConnectionResponse])
async def top_spenders(
    creator_id: str,
    limit: Annotated[int, Query(ge=1, le=100, description="Max connections")] = 10,
    db: AsyncSession = Depends(get_db),
) -> list[ConnectionResponse]:
    """Connections ranked by total revenue."""
    creator_uuid = parse_uuid(creator_id, "creator_id")
    connections = await ConnectionQueryService(db).top_spenders(creator_uuid, limit)
    return [connection_to_response(c) for c in connections]


@router.get("/creator/{creator_id}/at-risk", response_model=list[ConnectionResponse])
async def at_risk(
    creator_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[ConnectionResponse]:
    """Connections with churn risk of 70 or more."""
    creator_uuid = parse_uuid(creator_id, "creator_id")
    connections = await ConnectionQueryService(db).at_risk(creator_uuid)
    return [connection_to_response(c) for c in connections]


@router.get("/creator/{creator_id}/pending-likes", response_model=list[PendingLike])
async def pending_likes(
    creator_id: str,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    db: AsyncSession = Depends(get_db),
) -> list[PendingLike]:
    """Likes waiting on the creator, super likes first."""
    creator_uuid = parse_uuid(creator_id, "creator_id")
    likes = await ConnectionQueryService(db).pending_likes(
        creator_uuid, limit=limit, offset=(page - 1) * limit
    )
    return [
        PendingLike(
            connection_id=str(c.id),
            member_id=str(c.member_id),
            super_like=c.member_super_like,
            liked_at=c.member_swiped_at.isoformat() if c.member_swiped_at else None,
            viewed_photos=c.member_viewed_photos,
            read_bio=c.member_read_bio,
            compatibility_score=c.compatibility_score,
        )
        for c in likes
    ]


@router.get("/{actor_type}/{actor_id}/connections", response_model=list[ConnectionResponse])
async def list_connections(
    actor_type: Literal["member", "creator"],
    actor_id: str,
    connection_filter: Annotated[
        ConnectionFilter, Query(alias="filter", description="all, active, new or at_risk")
    ] = ConnectionFilter.ALL,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    db: AsyncSession = Depends(get_db),
) -> list[ConnectionResponse]:
    """A member's or creator's connections, newest first."""
    actor_uuid = parse_uuid(actor_id, "actor_id")
    actor = MemberActor(actor_uuid) if actor_type == "member" else CreatorActor(actor_uuid)
    connections = await ConnectionQueryService(db).list_connections(
        actor, connection_filter, limit=limit, offset=(page - 1) * limit
    )
    return [connection_to_response(c) for c in connections]


@router.get("/creator/{creator_id}/analytics")
async def connection_analytics(
    creator_id: str,
    days: Annotated[int, Query(ge=1, le=365, description="Days to analyze")] = 30,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Swipe funnel, revenue, engagement and daily trends."""
    creator_uuid = parse_uuid(creator_id, "creator_id")
    return await ConnectionQueryService(db).connection_analytics(creator_uuid, days)
