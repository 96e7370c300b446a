"""Moderation hooks.

Blocking is the only way into the terminal ``blocked`` status. The moderation
workflow itself (reports, review queues) lives in another service; this one
only applies its decisions to connections.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.database import utcnow
from swipematch.errors import InvalidEvent
from swipematch.models import Connection, ConnectionStatus
from swipematch.observability import get_logger
from swipematch.services.versioning import mutate_connection

log = get_logger(__name__)

MODERATION_FLAGS = ("inappropriate", "reported", "verified", "vip")


class ModerationService:
    """Apply moderation decisions to connections."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def block(
        self,
        connection_id: uuid.UUID,
        reason: str | None = None,
        inappropriate: bool = False,
        reported: bool = False,
    ) -> Connection:
        """
        Force a connection into ``blocked``.

        Blocking an already blocked connection only adds the given flags.
        """

        def apply(connection: Connection) -> None:
            if connection.status != ConnectionStatus.BLOCKED.value:
                connection.status = ConnectionStatus.BLOCKED.value
                connection.blocked_at = utcnow()
            if inappropriate:
                connection.flag_inappropriate = True
            if reported:
                connection.flag_reported = True

        connection, _ = await mutate_connection(self.db, connection_id, apply)
        log.warning(
            "connection_blocked",
            connection_id=connection_id,
            reason=reason,
            inappropriate=connection.flag_inappropriate,
            reported=connection.flag_reported,
        )
        return connection

    async def set_flags(self, connection_id: uuid.UUID, **flags: bool) -> Connection:
        """Set any of the inappropriate/reported/verified/vip flags."""
        unknown = set(flags) - set(MODERATION_FLAGS)
        if unknown:
            raise InvalidEvent("Unknown moderation flag", flags=sorted(unknown))

        def apply(connection: Connection) -> None:
            for name, value in flags.items():
                setattr(connection, f"flag_{name}", bool(value))

        connection, _ = await mutate_connection(self.db, connection_id, apply)
        log.info("connection_flags_updated", connection_id=connection_id, **flags)
        return connection
