"""Swipe and connection lifecycle endpoints."""

from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.api.common import (
    ActorRef,
    ConnectionResponse,
    connection_to_response,
    get_signal_sink,
    parse_actor,
    parse_uuid,
)
from swipematch.database import get_db
from swipematch.services.signals import SignalSink
from swipematch.services.swipes import SwipeResult, SwipeService, SwipeSession

router = APIRouter(prefix="/api/v1/connections", tags=["connections"])


# ============ Schemas ============


class SwipeRequest(BaseModel):
    """A member swipe from the browse stack."""

    member_id: str
    creator_id: str
    direction: Literal["left", "right"]
    super_like: bool = False
    session_seconds: float | None = None
    viewed_photos: int | None = None
    read_bio: bool = False
    browse_context: dict[str, Any] | None = None


class CreatorInterestRequest(BaseModel):
    creator_id: str
    member_id: str


class RespondRequest(BaseModel):
    """Creator decision on a pending like."""

    creator_id: str
    direction: Literal["left", "right"]


class DirectConnectionRequest(BaseModel):
    creator_id: str
    member_id: str


class PreferencesRequest(BaseModel):
    actor: ActorRef
    preferences: dict[str, bool]


class SwipeResponse(BaseModel):
    """Result of a swipe or response."""

    connected: bool
    instant_connection: bool
    connection_id: str | None
    message: str
    connection: ConnectionResponse


class DirectConnectionResponse(BaseModel):
    created: bool
    connection: ConnectionResponse


class PreferencesResponse(BaseModel):
    connection_id: str
    member_preferences: dict[str, bool]
    creator_preferences: dict[str, bool]


# ============ Helper Functions ============


def _swipe_response(result: SwipeResult, direction: str) -> SwipeResponse:
    if result.connected:
        message = "It's a connection!"
    elif direction == "right":
        message = "Like sent"
    else:
        message = "Passed"
    return SwipeResponse(
        connected=result.connected,
        instant_connection=result.instant,
        connection_id=str(result.connection.id) if result.connected else None,
        message=message,
        connection=connection_to_response(result.connection),
    )


# ============ Endpoints ============


@router.post("/swipe", response_model=SwipeResponse)
async def swipe(
    data: SwipeRequest,
    db: AsyncSession = Depends(get_db),
    signals: SignalSink = Depends(get_signal_sink),
) -> SwipeResponse:
    """
    Record a member swipe.

    Right swipes on creators with auto-connect enabled connect instantly.
    """
    member_id = parse_uuid(data.member_id, "member_id")
    creator_id = parse_uuid(data.creator_id, "creator_id")

    service = SwipeService(db, signals=signals)
    result = await service.record_member_swipe(
        member_id,
        creator_id,
        data.direction,
        super_like=data.super_like,
        session=SwipeSession(
            seconds=data.session_seconds,
            viewed_photos=data.viewed_photos,
            read_bio=data.read_bio,
        ),
        browse_context=data.browse_context,
    )
    return _swipe_response(result, data.direction)


@router.post("/interest", response_model=SwipeResponse)
async def creator_interest(
    data: CreatorInterestRequest,
    db: AsyncSession = Depends(get_db),
    signals: SignalSink = Depends(get_signal_sink),
) -> SwipeResponse:
    """Creator swipes right on a member from member discovery."""
    creator_id = parse_uuid(data.creator_id, "creator_id")
    member_id = parse_uuid(data.member_id, "member_id")

    result = await SwipeService(db, signals=signals).record_creator_interest(creator_id, member_id)
    return _swipe_response(result, "right")


@router.post("/{connection_id}/respond", response_model=SwipeResponse)
async def respond_to_like(
    connection_id: str,
    data: RespondRequest,
    db: AsyncSession = Depends(get_db),
    signals: SignalSink = Depends(get_signal_sink),
) -> SwipeResponse:
    """Creator accepts or declines a pending like."""
    connection_uuid = parse_uuid(connection_id, "connection_id")
    creator_id = parse_uuid(data.creator_id, "creator_id")

    result = await SwipeService(db, signals=signals).record_creator_response(
        creator_id, connection_uuid, data.direction
    )
    return _swipe_response(result, data.direction)


@router.post("/{connection_id}/disconnect", response_model=ConnectionResponse)
async def disconnect(
    connection_id: str,
    actor: ActorRef,
    db: AsyncSession = Depends(get_db),
) -> ConnectionResponse:
    """End a connection. Repeating the call is harmless."""
    connection_uuid = parse_uuid(connection_id, "connection_id")
    connection = await SwipeService(db).disconnect(parse_actor(actor), connection_uuid)
    return connection_to_response(connection)


@router.post("/direct", response_model=DirectConnectionResponse)
async def direct_connection(
    data: DirectConnectionRequest,
    db: AsyncSession = Depends(get_db),
    signals: SignalSink = Depends(get_signal_sink),
) -> DirectConnectionResponse:
    """Creator opens a connection with a member without a swipe."""
    creator_id = parse_uuid(data.creator_id, "creator_id")
    member_id = parse_uuid(data.member_id, "member_id")

    connection, created = await SwipeService(
        db, signals=signals
    ).find_or_create_direct_connection(creator_id, member_id)
    return DirectConnectionResponse(
        created=created, connection=connection_to_response(connection)
    )


@router.patch("/{connection_id}/preferences", response_model=PreferencesResponse)
async def update_preferences(
    connection_id: str,
    data: PreferencesRequest,
    db: AsyncSession = Depends(get_db),
) -> PreferencesResponse:
    """Update the acting side's notification preferences."""
    connection_uuid = parse_uuid(connection_id, "connection_id")
    connection = await SwipeService(db).update_notification_preferences(
        parse_actor(data.actor), connection_uuid, data.preferences
    )
    return PreferencesResponse(
        connection_id=str(connection.id),
        member_preferences=connection.member_preferences or {},
        creator_preferences=connection.creator_preferences or {},
    )
