"""Connection and monetization ledger models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from swipematch.database import Base, utcnow

if TYPE_CHECKING:
    from swipematch.models.creator import Creator
    from swipematch.models.member import Member


class ConnectionStatus(str, Enum):
    """Lifecycle status of a creator/member pair."""

    PENDING = "pending"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    BLOCKED = "blocked"


class SwipeDirection(str, Enum):
    """Stored swipe directions. SUPER is only ever a member-side value."""

    LEFT = "left"
    RIGHT = "right"
    SUPER = "super"


ACCEPTED_SWIPES = (SwipeDirection.RIGHT.value, SwipeDirection.SUPER.value)


class ConnectionSource(str, Enum):
    """How the record came into existence."""

    BROWSE = "browse"
    CREATOR_INTEREST = "creator_interest"
    CREATOR_INITIATED = "creator_initiated"


class HealthStatus(str, Enum):
    """Relationship health buckets, ordered from healthiest to worst."""

    THRIVING = "thriving"
    ACTIVE = "active"
    COOLING = "cooling"
    DORMANT = "dormant"
    AT_RISK = "at_risk"


class SpendingTier(str, Enum):
    """Member spending tier within a single connection."""

    FREE = "free"
    CASUAL = "casual"
    REGULAR = "regular"
    VIP = "vip"
    WHALE = "whale"


class PurchaseFrequency(str, Enum):
    """How often the member purchases from this creator."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    RARE = "rare"


class TransactionKind(str, Enum):
    """Ledger entry kinds."""

    CONTENT_UNLOCK = "content_unlock"
    DM_PURCHASE = "dm_purchase"
    TIP = "tip"
    REFUND = "refund"


class Party(str, Enum):
    """The two sides of a connection."""

    MEMBER = "member"
    CREATOR = "creator"


MEMBER_PREFERENCE_DEFAULTS = {
    "new_message": True,
    "content_post": True,
    "price_drop": True,
    "go_live": True,
}

CREATOR_PREFERENCE_DEFAULTS = {
    "new_connection": True,
    "first_message": True,
    "content_unlock": True,
    "tip": True,
}

# Values every new row starts from. Column defaults only apply at flush,
# and the services mutate counters before that.
_INITIAL_VALUES = {
    "member_super_like": False,
    "member_read_bio": False,
    "creator_auto_connected": False,
    "messages_from_member": 0,
    "messages_from_creator": 0,
    "unlock_count": 0,
    "unlock_spend": 0.0,
    "dm_purchase_count": 0,
    "dm_purchase_spend": 0.0,
    "dm_purchase_avg_price": 0.0,
    "tip_count": 0,
    "tip_total": 0.0,
    "tip_largest": 0.0,
    "engagement_level": 0.0,
    "spending_tier": SpendingTier.FREE.value,
    "loyalty_score": 0.0,
    "response_rate": 0.0,
    "avg_response_minutes": 0.0,
    "creator_responses": 0,
    "health_status": HealthStatus.ACTIVE.value,
    "churn_risk": 0,
    "days_since_last_interaction": 0,
    "total_revenue": 0.0,
    "refunded_total": 0.0,
    "transaction_count": 0,
    "avg_transaction_value": 0.0,
    "flag_inappropriate": False,
    "flag_reported": False,
    "flag_verified": False,
    "flag_vip": False,
}


class Connection(Base):
    """
    The persistent record of one creator/member relationship.

    Exactly one row exists per (creator, member) pair. Every write is guarded
    by ``version_id`` so concurrent read-modify-write cycles cannot silently
    overwrite each other.
    """

    __tablename__ = "connections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    creator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("creators.id", ondelete="CASCADE"), nullable=False
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    source: Mapped[str] = mapped_column(
        String(20), default=ConnectionSource.BROWSE.value
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default=ConnectionStatus.PENDING.value, nullable=False
    )
    connected_at: Mapped[datetime | None] = mapped_column(DateTime)
    disconnected_at: Mapped[datetime | None] = mapped_column(DateTime)
    blocked_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Member swipe
    member_swipe_direction: Mapped[str | None] = mapped_column(String(10))
    member_swiped_at: Mapped[datetime | None] = mapped_column(DateTime)
    member_super_like: Mapped[bool] = mapped_column(Boolean, default=False)
    member_session_seconds: Mapped[float | None] = mapped_column(Float)
    member_viewed_photos: Mapped[int | None] = mapped_column(Integer)
    member_read_bio: Mapped[bool] = mapped_column(Boolean, default=False)

    # Creator swipe
    creator_swipe_direction: Mapped[str | None] = mapped_column(String(10))
    creator_swiped_at: Mapped[datetime | None] = mapped_column(DateTime)
    creator_auto_connected: Mapped[bool] = mapped_column(Boolean, default=False)

    # Snapshot of filters/score/session when the member was shown this creator
    browse_context: Mapped[dict | None] = mapped_column(JSON)

    # Engagement
    messages_from_member: Mapped[int] = mapped_column(Integer, default=0)
    messages_from_creator: Mapped[int] = mapped_column(Integer, default=0)
    first_message_by: Mapped[str | None] = mapped_column(String(10))
    first_message_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_active_at: Mapped[datetime | None] = mapped_column(DateTime)
    awaiting_reply_since: Mapped[datetime | None] = mapped_column(DateTime)

    unlock_count: Mapped[int] = mapped_column(Integer, default=0)
    unlock_spend: Mapped[float] = mapped_column(Float, default=0)
    first_unlock_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_unlock_at: Mapped[datetime | None] = mapped_column(DateTime)

    dm_purchase_count: Mapped[int] = mapped_column(Integer, default=0)
    dm_purchase_spend: Mapped[float] = mapped_column(Float, default=0)
    dm_purchase_avg_price: Mapped[float] = mapped_column(Float, default=0)

    tip_count: Mapped[int] = mapped_column(Integer, default=0)
    tip_total: Mapped[float] = mapped_column(Float, default=0)
    tip_largest: Mapped[float] = mapped_column(Float, default=0)

    # Relationship: member score
    engagement_level: Mapped[float] = mapped_column(Float, default=0)
    spending_tier: Mapped[str] = mapped_column(
        String(10), default=SpendingTier.FREE.value
    )
    loyalty_score: Mapped[float] = mapped_column(Float, default=0)

    # Relationship: creator score
    response_rate: Mapped[float] = mapped_column(Float, default=0)
    avg_response_minutes: Mapped[float] = mapped_column(Float, default=0)
    creator_responses: Mapped[int] = mapped_column(Integer, default=0)

    # Relationship: compatibility
    compatibility_score: Mapped[int | None] = mapped_column(Integer)
    compatibility_factors: Mapped[dict | None] = mapped_column(JSON)

    # Relationship: health (derived, never written from outside the engine)
    health_status: Mapped[str] = mapped_column(
        String(10), default=HealthStatus.ACTIVE.value
    )
    churn_risk: Mapped[int] = mapped_column(Integer, default=0)
    days_since_last_interaction: Mapped[int] = mapped_column(Integer, default=0)
    health_computed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Monetization
    total_revenue: Mapped[float] = mapped_column(Float, default=0)
    refunded_total: Mapped[float] = mapped_column(Float, default=0)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0)
    avg_transaction_value: Mapped[float] = mapped_column(Float, default=0)
    first_purchase_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_purchase_at: Mapped[datetime | None] = mapped_column(DateTime)
    purchase_frequency: Mapped[str | None] = mapped_column(String(10))

    # Notification policy per side
    member_preferences: Mapped[dict | None] = mapped_column(JSON)
    creator_preferences: Mapped[dict | None] = mapped_column(JSON)

    # Moderation / verification flags
    flag_inappropriate: Mapped[bool] = mapped_column(Boolean, default=False)
    flag_reported: Mapped[bool] = mapped_column(Boolean, default=False)
    flag_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    flag_vip: Mapped[bool] = mapped_column(Boolean, default=False)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    # Relationships
    creator: Mapped["Creator"] = relationship("Creator", back_populates="connections")
    member: Mapped["Member"] = relationship("Member", back_populates="connections")
    transactions: Mapped[list["ConnectionTransaction"]] = relationship(
        "ConnectionTransaction",
        back_populates="connection",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        UniqueConstraint("creator_id", "member_id", name="uq_connection_pair"),
        Index("idx_connections_member", "member_id"),
        Index("idx_connections_status_connected", "status", "connected_at"),
        Index("idx_connections_health", "health_status"),
        Index("idx_connections_revenue", "creator_id", "total_revenue"),
        Index("idx_connections_last_active", "last_active_at"),
        Index("idx_connections_churn", "creator_id", "churn_risk"),
    )

    @classmethod
    def new_pair(
        cls,
        creator_id: uuid.UUID,
        member_id: uuid.UUID,
        source: ConnectionSource,
        now: datetime,
    ) -> "Connection":
        """Build a fresh pending record with all counters initialised."""
        return cls(
            id=uuid.uuid4(),
            creator_id=creator_id,
            member_id=member_id,
            source=source.value,
            status=ConnectionStatus.PENDING.value,
            member_preferences=dict(MEMBER_PREFERENCE_DEFAULTS),
            creator_preferences=dict(CREATOR_PREFERENCE_DEFAULTS),
            created_at=now,
            updated_at=now,
            **_INITIAL_VALUES,
        )

    def __repr__(self) -> str:
        return f"<Connection {self.creator_id}/{self.member_id} ({self.status})>"


class ConnectionTransaction(Base):
    """An itemized monetization entry on a connection."""

    __tablename__ = "connection_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    connection_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("connections.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    content_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    message_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    content_type: Mapped[str | None] = mapped_column(String(20))

    # Payment collaborator's event id; a redelivery is detected by this value
    external_ref: Mapped[str | None] = mapped_column(String(100))

    # Refund entries point at the purchase they reverse
    refunded_transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("connection_transactions.id")
    )
    reason: Mapped[str | None] = mapped_column(String(255))

    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    connection: Mapped["Connection"] = relationship(
        "Connection", back_populates="transactions"
    )

    __table_args__ = (
        UniqueConstraint("connection_id", "external_ref", name="uq_transaction_ref"),
        Index("idx_transactions_connection", "connection_id", "occurred_at"),
    )

    def __repr__(self) -> str:
        return f"<ConnectionTransaction {self.kind} {self.amount}>"
