"""Outbound signals for the notification collaborator.

The engine only decides *that* something should be announced. Delivery is
owned elsewhere; the default sink writes a structured log line that a log
shipper can forward.
"""

from datetime import datetime
from enum import Enum
from typing import Protocol

from swipematch.models import Connection
from swipematch.observability import get_logger

log = get_logger(__name__)


class LikePriority(str, Enum):
    """Delivery priority for a like-received signal."""

    NORMAL = "normal"
    HIGH = "high"


class SignalSink(Protocol):
    """Receiver for engine signals. Called only after the write committed."""

    def like_received(self, connection: Connection, priority: LikePriority) -> None:
        ...

    def connection_established(self, connection: Connection, instant: bool) -> None:
        ...


class LoggingSignalSink:
    """Default sink: one structured log event per signal."""

    def like_received(self, connection: Connection, priority: LikePriority) -> None:
        log.info(
            "like_received",
            connection_id=connection.id,
            creator_id=connection.creator_id,
            member_id=connection.member_id,
            super_like=connection.member_super_like,
            priority=priority.value,
        )

    def connection_established(self, connection: Connection, instant: bool) -> None:
        connected_at: datetime | None = connection.connected_at
        log.info(
            "connection_established",
            connection_id=connection.id,
            creator_id=connection.creator_id,
            member_id=connection.member_id,
            source=connection.source,
            instant=instant,
            connected_at=connected_at.isoformat() if connected_at else None,
        )
