"""SQLAlchemy models for SwipeMatch."""

from swipematch.models.connection import (
    ACCEPTED_SWIPES,
    CREATOR_PREFERENCE_DEFAULTS,
    MEMBER_PREFERENCE_DEFAULTS,
    Connection,
    ConnectionSource,
    ConnectionStatus,
    ConnectionTransaction,
    HealthStatus,
    Party,
    PurchaseFrequency,
    SpendingTier,
    SwipeDirection,
    TransactionKind,
)
from swipematch.models.creator import Creator, Gender, Orientation
from swipematch.models.member import Member

__all__ = [
    "ACCEPTED_SWIPES",
    "Creator",
    "Member",
    "Connection",
    "ConnectionTransaction",
    "ConnectionStatus",
    "ConnectionSource",
    "SwipeDirection",
    "HealthStatus",
    "SpendingTier",
    "PurchaseFrequency",
    "TransactionKind",
    "Party",
    "MEMBER_PREFERENCE_DEFAULTS",
    "CREATOR_PREFERENCE_DEFAULTS",
    "Gender",
    "Orientation",
]
