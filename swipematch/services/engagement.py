"""Engagement aggregation - messages, unlocks, DM purchases and tips.

Every event is applied to the connection in one optimistic read-modify-write:
counters, the monetization ledger, the member/creator scores and the health
fields all change together or not at all.

Monetization totals only go down through :meth:`EngagementAggregator.refund`,
which writes its own ledger entry.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.database import utcnow
from swipematch.errors import InvalidEvent, InvalidState, NotFound
from swipematch.models import (
    Connection,
    ConnectionStatus,
    ConnectionTransaction,
    Party,
    PurchaseFrequency,
    SpendingTier,
    TransactionKind,
)
from swipematch.observability import get_logger
from swipematch.services.health import apply_health, relationship_strength
from swipematch.services.versioning import load_connection, mutate_connection

log = get_logger(__name__)


class EventKind(str, Enum):
    MESSAGE_SENT = "message_sent"
    CONTENT_UNLOCKED = "content_unlocked"
    DM_PURCHASED = "dm_purchased"
    TIP_SENT = "tip_sent"


MONETARY_KINDS = {
    EventKind.CONTENT_UNLOCKED: TransactionKind.CONTENT_UNLOCK,
    EventKind.DM_PURCHASED: TransactionKind.DM_PURCHASE,
    EventKind.TIP_SENT: TransactionKind.TIP,
}

# (minimum total revenue, tier), checked top-down
SPENDING_TIERS = [
    (1000, SpendingTier.WHALE),
    (500, SpendingTier.VIP),
    (100, SpendingTier.REGULAR),
]

# (maximum average days between purchases, frequency)
PURCHASE_FREQUENCIES = [
    (1, PurchaseFrequency.DAILY),
    (7, PurchaseFrequency.WEEKLY),
    (31, PurchaseFrequency.MONTHLY),
]

# Failures in derived scores are logged and the previous values kept
DERIVED_ERRORS = (TypeError, ValueError, ZeroDivisionError, OverflowError)


@dataclass
class EngagementEvent:
    """
    One engagement event from the messaging or payment collaborator.

    ``amount`` is the price for unlocks and DM purchases and the tip amount
    for tips. ``external_ref`` is the collaborator's own event id; a repeated
    ref on the same connection is ignored.
    """

    kind: EventKind
    sender: Party | None = None
    amount: float | None = None
    content_id: uuid.UUID | None = None
    message_id: uuid.UUID | None = None
    content_type: str | None = None
    external_ref: str | None = None
    occurred_at: datetime | None = None

    def validate(self) -> None:
        if self.kind == EventKind.MESSAGE_SENT:
            if self.sender not in (Party.MEMBER, Party.CREATOR):
                raise InvalidEvent("message_sent requires sender 'member' or 'creator'")
            return

        if self.amount is None:
            raise InvalidEvent(f"{self.kind.value} requires an amount")
        if self.amount < 0:
            raise InvalidEvent("Amount cannot be negative", amount=self.amount)
        if self.kind == EventKind.TIP_SENT and self.amount == 0:
            raise InvalidEvent("Tip amount must be positive")


def spending_tier(total_revenue: float) -> SpendingTier:
    for minimum, tier in SPENDING_TIERS:
        if total_revenue >= minimum:
            return tier
    return SpendingTier.CASUAL if total_revenue > 0 else SpendingTier.FREE


def purchase_frequency(
    first_purchase_at: datetime | None,
    last_purchase_at: datetime | None,
    purchase_count: int,
) -> PurchaseFrequency | None:
    """Classify by the average gap between purchases."""
    if first_purchase_at is None or last_purchase_at is None or purchase_count == 0:
        return None
    if purchase_count < 2:
        return PurchaseFrequency.RARE
    gap_days = (last_purchase_at - first_purchase_at) / timedelta(days=1) / (purchase_count - 1)
    for maximum, frequency in PURCHASE_FREQUENCIES:
        if gap_days <= maximum:
            return frequency
    return PurchaseFrequency.RARE


def loyalty_score(connected_at: datetime | None, transaction_count: int, now: datetime) -> float:
    """10 points per month connected plus 2 per purchase, capped at 100."""
    months = (now - connected_at).days // 30 if connected_at else 0
    return float(min(100, 10 * months + 2 * transaction_count))


def recompute_scores(connection: Connection, now: datetime) -> None:
    """
    Refresh member score, creator score, monetization averages and health.

    Everything is computed before anything is written, so a failure leaves
    the previous values intact.
    """
    try:
        engagement = relationship_strength(connection, now)
        tier = spending_tier(connection.total_revenue)
        loyalty = loyalty_score(connection.connected_at, connection.transaction_count, now)
        from_member = connection.messages_from_member
        response_rate = (
            min(100.0, connection.messages_from_creator / from_member * 100)
            if from_member
            else 0.0
        )
        avg_value = (
            connection.total_revenue / connection.transaction_count
            if connection.transaction_count
            else 0.0
        )
        frequency = purchase_frequency(
            connection.first_purchase_at,
            connection.last_purchase_at,
            connection.transaction_count,
        )
    except DERIVED_ERRORS:
        log.exception("derived_scores_failed", connection_id=connection.id)
    else:
        connection.engagement_level = engagement
        connection.spending_tier = tier.value
        connection.loyalty_score = loyalty
        connection.response_rate = round(response_rate, 2)
        connection.avg_transaction_value = round(avg_value, 2)
        connection.purchase_frequency = frequency.value if frequency else None

    try:
        apply_health(connection, now)
    except DERIVED_ERRORS:
        log.exception("health_recompute_failed", connection_id=connection.id)


def _apply_message(connection: Connection, sender: Party, now: datetime) -> None:
    if sender == Party.MEMBER:
        connection.messages_from_member += 1
        if connection.awaiting_reply_since is None:
            connection.awaiting_reply_since = now
    else:
        connection.messages_from_creator += 1
        if connection.awaiting_reply_since is not None:
            waited = (now - connection.awaiting_reply_since) / timedelta(minutes=1)
            count = connection.creator_responses
            connection.avg_response_minutes = round(
                (connection.avg_response_minutes * count + waited) / (count + 1), 2
            )
            connection.creator_responses = count + 1
            connection.awaiting_reply_since = None

    if connection.first_message_by is None:
        connection.first_message_by = sender.value
        connection.first_message_at = now
    connection.last_message_at = now


def _apply_purchase(connection: Connection, event: EngagementEvent, now: datetime) -> None:
    amount = event.amount
    if event.kind == EventKind.CONTENT_UNLOCKED:
        connection.unlock_count += 1
        connection.unlock_spend += amount
        if connection.first_unlock_at is None:
            connection.first_unlock_at = now
        connection.last_unlock_at = now
    elif event.kind == EventKind.DM_PURCHASED:
        connection.dm_purchase_count += 1
        connection.dm_purchase_spend += amount
        connection.dm_purchase_avg_price = round(
            connection.dm_purchase_spend / connection.dm_purchase_count, 2
        )
    elif event.kind == EventKind.TIP_SENT:
        connection.tip_count += 1
        connection.tip_total += amount
        connection.tip_largest = max(connection.tip_largest, amount)

    connection.total_revenue += amount
    connection.transaction_count += 1
    if connection.first_purchase_at is None:
        connection.first_purchase_at = now
    connection.last_purchase_at = now


class EngagementAggregator:
    """Fold engagement events and refunds into a connection."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ref_seen(self, connection_id: uuid.UUID, external_ref: str) -> bool:
        result = await self.db.execute(
            select(ConnectionTransaction.id).where(
                ConnectionTransaction.connection_id == connection_id,
                ConnectionTransaction.external_ref == external_ref,
            )
        )
        return result.first() is not None

    async def apply_event(self, connection_id: uuid.UUID, event: EngagementEvent) -> Connection:
        """
        Apply one engagement event.

        Args:
            connection_id: Connection the event belongs to
            event: The event payload

        Returns:
            The updated connection (unchanged for a repeated external_ref)

        Raises:
            InvalidEvent: Malformed payload
            NotFound: Unknown connection
            InvalidState: Blocked connection, or a message on an unconnected one
        """
        event.validate()

        async def apply(connection: Connection) -> bool:
            if connection.status == ConnectionStatus.BLOCKED.value:
                raise InvalidState("Connection is blocked", connection_id=connection.id)
            if (
                event.kind == EventKind.MESSAGE_SENT
                and connection.status != ConnectionStatus.CONNECTED.value
            ):
                raise InvalidState(
                    "Messaging requires a connected connection",
                    connection_id=connection.id,
                    status=connection.status,
                )
            if event.kind in MONETARY_KINDS and event.external_ref:
                if await self._ref_seen(connection.id, event.external_ref):
                    return False

            now = utcnow()
            if event.kind == EventKind.MESSAGE_SENT:
                _apply_message(connection, event.sender, now)
            else:
                _apply_purchase(connection, event, now)
                self.db.add(
                    ConnectionTransaction(
                        connection_id=connection.id,
                        kind=MONETARY_KINDS[event.kind].value,
                        amount=event.amount,
                        content_id=event.content_id,
                        message_id=event.message_id,
                        content_type=event.content_type,
                        external_ref=event.external_ref,
                        occurred_at=event.occurred_at or now,
                    )
                )

            connection.last_active_at = now
            recompute_scores(connection, now)
            return True

        try:
            connection, applied = await mutate_connection(self.db, connection_id, apply)
        except IntegrityError:
            # Same external_ref delivered concurrently; the other delivery won
            log.info(
                "duplicate_engagement_event",
                connection_id=connection_id,
                external_ref=event.external_ref,
            )
            return await load_connection(self.db, connection_id, refresh=True)

        if not applied:
            log.info(
                "duplicate_engagement_event",
                connection_id=connection_id,
                external_ref=event.external_ref,
            )
            return connection

        log.info(
            "engagement_event_applied",
            connection_id=connection_id,
            kind=event.kind.value,
            amount=event.amount,
            total_revenue=connection.total_revenue,
            health_status=connection.health_status,
        )
        return connection

    async def refund(
        self,
        connection_id: uuid.UUID,
        transaction_id: uuid.UUID,
        amount: float | None = None,
        reason: str | None = None,
    ) -> ConnectionTransaction:
        """
        Reverse all or part of a purchase.

        Writes a ``refund`` ledger entry pointing at the purchase and lowers
        ``total_revenue``. Purchase counters are left as they were.

        Args:
            connection_id: Connection the purchase belongs to
            transaction_id: Purchase being refunded
            amount: Amount to refund; defaults to the whole refundable remainder
            reason: Free-text reason kept on the ledger entry

        Returns:
            The refund ledger entry
        """
        if amount is not None and amount <= 0:
            raise InvalidEvent("Refund amount must be positive", amount=amount)

        async def apply(connection: Connection) -> ConnectionTransaction:
            purchase = await self.db.get(
                ConnectionTransaction, transaction_id, populate_existing=True
            )
            if purchase is None or purchase.connection_id != connection.id:
                raise NotFound(
                    "Transaction not found on this connection",
                    transaction_id=transaction_id,
                )
            if purchase.kind == TransactionKind.REFUND.value:
                raise InvalidState("A refund cannot be refunded", transaction_id=transaction_id)

            already = await self.db.execute(
                select(func.coalesce(func.sum(ConnectionTransaction.amount), 0)).where(
                    ConnectionTransaction.refunded_transaction_id == purchase.id
                )
            )
            remaining = round(purchase.amount - float(already.scalar()), 2)
            refund_amount = remaining if amount is None else amount
            if remaining <= 0 or refund_amount > remaining:
                raise InvalidState(
                    "Refund exceeds the refundable amount",
                    transaction_id=transaction_id,
                    remaining=remaining,
                )

            now = utcnow()
            entry = ConnectionTransaction(
                connection_id=connection.id,
                kind=TransactionKind.REFUND.value,
                amount=refund_amount,
                refunded_transaction_id=purchase.id,
                reason=reason,
                occurred_at=now,
            )
            self.db.add(entry)
            connection.total_revenue = round(connection.total_revenue - refund_amount, 2)
            connection.refunded_total = round(connection.refunded_total + refund_amount, 2)
            recompute_scores(connection, now)
            return entry

        connection, entry = await mutate_connection(self.db, connection_id, apply)
        log.info(
            "refund_recorded",
            connection_id=connection_id,
            transaction_id=transaction_id,
            amount=entry.amount,
            total_revenue=connection.total_revenue,
        )
        return entry
