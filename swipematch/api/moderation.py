"""Moderation decision endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.api.common import ConnectionResponse, connection_to_response, parse_uuid
from swipematch.database import get_db
from swipematch.services.moderation import ModerationService

router = APIRouter(prefix="/api/v1/moderation", tags=["moderation"])


class BlockRequest(BaseModel):
    reason: str | None = None
    inappropriate: bool = False
    reported: bool = False


class FlagsRequest(BaseModel):
    """Flags to set; omitted flags are left alone."""

    inappropriate: bool | None = None
    reported: bool | None = None
    verified: bool | None = None
    vip: bool | None = None


class FlagsResponse(BaseModel):
    connection_id: str
    status: str
    inappropriate: bool
    reported: bool
    verified: bool
    vip: bool


@router.post("/connections/{connection_id}/block", response_model=ConnectionResponse)
async def block_connection(
    connection_id: str,
    data: BlockRequest,
    db: AsyncSession = Depends(get_db),
) -> ConnectionResponse:
    """Force a connection into the terminal blocked status."""
    connection_uuid = parse_uuid(connection_id, "connection_id")
    connection = await ModerationService(db).block(
        connection_uuid,
        reason=data.reason,
        inappropriate=data.inappropriate,
        reported=data.reported,
    )
    return connection_to_response(connection)


@router.patch("/connections/{connection_id}/flags", response_model=FlagsResponse)
async def set_flags(
    connection_id: str,
    data: FlagsRequest,
    db: AsyncSession = Depends(get_db),
) -> FlagsResponse:
    connection_uuid = parse_uuid(connection_id, "connection_id")
    connection = await ModerationService(db).set_flags(
        connection_uuid, **data.model_dump(exclude_none=True)
    )
    return FlagsResponse(
        connection_id=str(connection.id),
        status=connection.status,
        inappropriate=connection.flag_inappropriate,
        reported=connection.flag_reported,
        verified=connection.flag_verified,
        vip=connection.flag_vip,
    )
