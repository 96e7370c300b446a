"""Creator model - profile data owned by the creator account service."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from swipematch.database import Base, utcnow

if TYPE_CHECKING:
    from swipematch.models.connection import Connection


class Gender(str, Enum):
    """Profile gender values."""

    FEMALE = "female"
    MALE = "male"
    NON_BINARY = "non_binary"


class Orientation(str, Enum):
    """Profile orientation values."""

    STRAIGHT = "straight"
    GAY = "gay"
    LESBIAN = "lesbian"
    BISEXUAL = "bisexual"
    PANSEXUAL = "pansexual"


class Creator(Base):
    """A creator who can be browsed, swiped on and connected with."""

    __tablename__ = "creators"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(255))

    # Attributes used by browse filters and compatibility
    gender: Mapped[str | None] = mapped_column(String(20))
    orientation: Mapped[str | None] = mapped_column(String(20))
    age: Mapped[int | None] = mapped_column(Integer)
    body_type: Mapped[str | None] = mapped_column(String(30))
    ethnicity: Mapped[str | None] = mapped_column(String(30))
    interests: Mapped[list | None] = mapped_column(JSON, default=list)

    # Account and preference flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    show_in_browse: Mapped[bool] = mapped_column(Boolean, default=True)
    auto_connect_enabled: Mapped[bool] = mapped_column(Boolean, default=False)

    last_active_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_content_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    connections: Mapped[list["Connection"]] = relationship(
        "Connection",
        back_populates="creator",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_creators_browse", "is_active", "is_verified", "show_in_browse"),
        Index("idx_creators_last_active", "last_active_at"),
    )

    def __repr__(self) -> str:
        return f"<Creator {self.username}>"
