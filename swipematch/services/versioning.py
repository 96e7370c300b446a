"""Optimistic read-modify-write for Connection rows.

Every write to a connection goes through :func:`mutate_connection`. The
``version_id`` column makes the UPDATE conditional on the version that was
read, so a concurrent writer causes a ``StaleDataError`` instead of a lost
update. The mutator is re-applied to a fresh copy of the row in that case.
"""

import inspect
import uuid
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from swipematch.config import settings
from swipematch.errors import ConstraintViolation, NotFound
from swipematch.models import Connection
from swipematch.observability import get_logger

log = get_logger(__name__)

T = TypeVar("T")


async def load_connection(
    db: AsyncSession, connection_id: uuid.UUID, refresh: bool = False
) -> Connection:
    """Fetch a connection or raise NotFound."""
    connection = await db.get(Connection, connection_id, populate_existing=refresh)
    if connection is None:
        raise NotFound("Connection not found", connection_id=connection_id)
    return connection


async def mutate_connection(
    db: AsyncSession,
    connection_id: uuid.UUID,
    mutator: Callable[[Connection], T | Awaitable[T]],
    max_attempts: int | None = None,
) -> tuple[Connection, T]:
    """
    Apply ``mutator`` to the connection and commit atomically.

    The mutator runs against the loaded row and may raise an engine error to
    abort; the session is rolled back in that case. Coroutine mutators are
    awaited so they can run their own queries in the same transaction. The
    mutator's return value is handed back alongside the committed connection.

    Args:
        db: Session to run in
        connection_id: Connection to mutate
        mutator: Callable applied to the loaded Connection
        max_attempts: Override for ``settings.max_update_attempts``

    Returns:
        (connection, mutator result)
    """
    attempts = max_attempts or settings.max_update_attempts

    for attempt in range(1, attempts + 1):
        connection = await load_connection(db, connection_id, refresh=attempt > 1)
        try:
            result = mutator(connection)
            if inspect.isawaitable(result):
                result = await result
            await db.commit()
        except StaleDataError:
            await db.rollback()
            log.warning(
                "connection_write_conflict",
                connection_id=connection_id,
                attempt=attempt,
            )
            continue
        except Exception:
            await db.rollback()
            raise
        return connection, result

    raise ConstraintViolation(
        "Connection was modified concurrently too many times",
        connection_id=connection_id,
        attempts=attempts,
    )
