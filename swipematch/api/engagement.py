"""Engagement event ingestion from the messaging and payment services."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.api.common import ConnectionResponse, connection_to_response, parse_uuid
from swipematch.database import get_db
from swipematch.models import Party
from swipematch.services.engagement import EngagementAggregator, EngagementEvent, EventKind

router = APIRouter(prefix="/api/v1/engagement", tags=["engagement"])


# ============ Schemas ============


class EngagementEventRequest(BaseModel):
    """Payload delivered by the messaging/payment collaborator."""

    type: Literal["message_sent", "content_unlocked", "dm_purchased", "tip_sent"]
    sender: Literal["member", "creator"] | None = None
    price: float | None = None
    amount: float | None = None
    content_id: str | None = None
    message_id: str | None = None
    content_type: str | None = None
    external_ref: str | None = None
    occurred_at: datetime | None = None


class RefundRequest(BaseModel):
    transaction_id: str
    amount: float | None = None
    reason: str | None = None


class RefundResponse(BaseModel):
    """The refund ledger entry."""

    id: str
    connection_id: str
    refunded_transaction_id: str
    amount: float
    reason: str | None
    occurred_at: str


# ============ Helper Functions ============


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ============ Endpoints ============


@router.post("/{connection_id}/events", response_model=ConnectionResponse)
async def apply_event(
    connection_id: str,
    data: EngagementEventRequest,
    db: AsyncSession = Depends(get_db),
) -> ConnectionResponse:
    """
    Apply one engagement event.

    Unlocks and DM purchases send ``price``; tips send ``amount``. Events
    carrying an already seen ``external_ref`` are acknowledged without effect.
    """
    connection_uuid = parse_uuid(connection_id, "connection_id")
    event = EngagementEvent(
        kind=EventKind(data.type),
        sender=Party(data.sender) if data.sender else None,
        amount=data.amount if data.price is None else data.price,
        content_id=parse_uuid(data.content_id, "content_id") if data.content_id else None,
        message_id=parse_uuid(data.message_id, "message_id") if data.message_id else None,
        content_type=data.content_type,
        external_ref=data.external_ref,
        occurred_at=_naive_utc(data.occurred_at),
    )

    connection = await EngagementAggregator(db).apply_event(connection_uuid, event)
    return connection_to_response(connection)


@router.post("/{connection_id}/refunds", response_model=RefundResponse)
async def refund(
    connection_id: str,
    data: RefundRequest,
    db: AsyncSession = Depends(get_db),
) -> RefundResponse:
    """Reverse all or part of a purchase on this connection."""
    connection_uuid = parse_uuid(connection_id, "connection_id")
    transaction_uuid = parse_uuid(data.transaction_id, "transaction_id")

    entry = await EngagementAggregator(db).refund(
        connection_uuid, transaction_uuid, amount=data.amount, reason=data.reason
    )
    return RefundResponse(
        id=str(entry.id),
        connection_id=str(entry.connection_id),
        refunded_transaction_id=str(entry.refunded_transaction_id),
        amount=entry.amount,
        reason=entry.reason,
        occurred_at=entry.occurred_at.isoformat(),
    )
