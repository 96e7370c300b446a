"""Swipe state machine.

Transitions:
    pending   -> connected | disconnected
    connected -> disconnected
    *         -> blocked   (moderation only, see ModerationService)

A pair becomes connected when the member swiped right (or super) and either
the creator swiped right, the creator has auto-connect enabled, or the
creator opened the connection directly.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.database import utcnow
from swipematch.errors import (
    AlreadySwiped,
    ConstraintViolation,
    InvalidState,
    InvalidSwipe,
    NotFound,
    Unauthorized,
)
from swipematch.models import (
    ACCEPTED_SWIPES,
    CREATOR_PREFERENCE_DEFAULTS,
    MEMBER_PREFERENCE_DEFAULTS,
    Connection,
    ConnectionSource,
    ConnectionStatus,
    Creator,
    Member,
    SwipeDirection,
)
from swipematch.observability import get_logger
from swipematch.services.actors import Actor, CreatorActor, MemberActor, is_participant
from swipematch.services.compatibility import CompatibilityScorer
from swipematch.services.health import apply_health
from swipematch.services.signals import LikePriority, LoggingSignalSink, SignalSink
from swipematch.services.versioning import load_connection, mutate_connection

log = get_logger(__name__)

# Attempts at inserting a brand-new pair before giving up on the race
MAX_INSERT_ATTEMPTS = 2


@dataclass
class SwipeSession:
    """Browse-session quality signals sent with a member swipe."""

    seconds: float | None = None
    viewed_photos: int | None = None
    read_bio: bool = False


@dataclass
class SwipeResult:
    """Outcome of a swipe or response."""

    connection: Connection
    connected: bool = False
    instant: bool = False
    liked: bool = False


def _establish(connection: Connection, now: datetime, auto: bool = False) -> None:
    """Move a record into connected and start engagement tracking."""
    if auto:
        connection.creator_swipe_direction = SwipeDirection.RIGHT.value
        connection.creator_swiped_at = now
        connection.creator_auto_connected = True
    connection.status = ConnectionStatus.CONNECTED.value
    connection.connected_at = now
    # Health is always the health model's reading of the record
    apply_health(connection, now)


def _validate_direction(direction: str, super_like: bool = False) -> str:
    if direction not in (SwipeDirection.LEFT.value, SwipeDirection.RIGHT.value):
        raise InvalidSwipe("Swipe direction must be 'left' or 'right'", direction=direction)
    if super_like and direction != SwipeDirection.RIGHT.value:
        raise InvalidSwipe("A super like must be a right swipe", direction=direction)
    return SwipeDirection.SUPER.value if super_like else direction


class SwipeService:
    """Record swipes and drive connection status transitions."""

    def __init__(
        self,
        db: AsyncSession,
        signals: SignalSink | None = None,
        scorer: CompatibilityScorer | None = None,
    ):
        self.db = db
        self.signals = signals or LoggingSignalSink()
        self.scorer = scorer or CompatibilityScorer()

    # ============ Lookups ============

    async def _get_pair(self, creator_id: uuid.UUID, member_id: uuid.UUID) -> Connection | None:
        result = await self.db.execute(
            select(Connection).where(
                Connection.creator_id == creator_id,
                Connection.member_id == member_id,
            )
        )
        return result.scalar_one_or_none()

    async def _get_participants(
        self, creator_id: uuid.UUID, member_id: uuid.UUID
    ) -> tuple[Creator, Member]:
        creator = await self.db.get(Creator, creator_id)
        if creator is None:
            raise NotFound("Creator not found", creator_id=creator_id)
        member = await self.db.get(Member, member_id)
        if member is None:
            raise NotFound("Member not found", member_id=member_id)
        return creator, member

    async def _create_or_mutate(
        self,
        creator: Creator,
        member: Member,
        source: ConnectionSource,
        apply: Callable[[Connection], SwipeResult],
    ) -> SwipeResult:
        """
        Apply ``apply`` to the pair's record, inserting it first if missing.

        A concurrent insert of the same pair surfaces as IntegrityError; the
        loser rolls back and re-runs against the row the winner created.
        Rollback expires loaded rows, so everything needed from the profiles
        is read up front.
        """
        creator_id, member_id = creator.id, member.id
        compatibility = self.scorer.score(member, creator)

        for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
            existing = await self._get_pair(creator_id, member_id)
            if existing is not None:
                _, result = await mutate_connection(self.db, existing.id, apply)
                return result

            now = utcnow()
            connection = Connection.new_pair(creator_id, member_id, source, now)
            connection.compatibility_score = compatibility.score
            connection.compatibility_factors = compatibility.factors()
            result = apply(connection)
            self.db.add(connection)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                log.info(
                    "connection_insert_race",
                    creator_id=creator_id,
                    member_id=member_id,
                    attempt=attempt,
                )
                continue
            return result

        raise ConstraintViolation(
            "Could not create connection for pair",
            creator_id=creator_id,
            member_id=member_id,
        )

    def _emit(self, result: SwipeResult) -> None:
        """Send signals for a committed result."""
        if result.connected:
            self.signals.connection_established(result.connection, instant=result.instant)
        elif result.liked:
            priority = (
                LikePriority.HIGH if result.connection.member_super_like else LikePriority.NORMAL
            )
            self.signals.like_received(result.connection, priority)

    # ============ Operations ============

    async def record_member_swipe(
        self,
        member_id: uuid.UUID,
        creator_id: uuid.UUID,
        direction: str,
        super_like: bool = False,
        session: SwipeSession | None = None,
        browse_context: dict[str, Any] | None = None,
    ) -> SwipeResult:
        """
        Record a member's swipe on a creator.

        Args:
            member_id: Member swiping
            creator_id: Creator swiped on
            direction: "left" or "right"
            super_like: Elevated right swipe, stored as direction "super"
            session: Session-quality signals
            browse_context: Filters/score/session snapshot, stored once

        Returns:
            SwipeResult with connected/instant flags

        Raises:
            InvalidSwipe, NotFound, AlreadySwiped, InvalidState, ConstraintViolation
        """
        stored_direction = _validate_direction(direction, super_like)
        creator, member = await self._get_participants(creator_id, member_id)
        auto_connect = creator.auto_connect_enabled
        session = session or SwipeSession()

        def apply(connection: Connection) -> SwipeResult:
            if connection.member_swipe_direction is not None:
                raise AlreadySwiped(
                    "Member already swiped on this creator",
                    connection_id=connection.id,
                )
            if connection.status != ConnectionStatus.PENDING.value:
                raise InvalidState(
                    f"Cannot swipe on a {connection.status} connection",
                    connection_id=connection.id,
                )

            now = utcnow()
            connection.member_swipe_direction = stored_direction
            connection.member_swiped_at = now
            connection.member_super_like = super_like
            connection.member_session_seconds = session.seconds
            connection.member_viewed_photos = session.viewed_photos
            connection.member_read_bio = session.read_bio
            if connection.browse_context is None and browse_context is not None:
                connection.browse_context = browse_context

            result = SwipeResult(connection=connection)
            if stored_direction not in ACCEPTED_SWIPES:
                return result

            if auto_connect:
                _establish(connection, now, auto=True)
                result.connected = result.instant = True
            elif connection.creator_swipe_direction == SwipeDirection.RIGHT.value:
                _establish(connection, now)
                result.connected = True
            else:
                result.liked = True
            return result

        result = await self._create_or_mutate(creator, member, ConnectionSource.BROWSE, apply)
        log.info(
            "member_swiped",
            connection_id=result.connection.id,
            member_id=member_id,
            creator_id=creator_id,
            direction=stored_direction,
            connected=result.connected,
            instant=result.instant,
        )
        self._emit(result)
        return result

    async def record_creator_interest(
        self, creator_id: uuid.UUID, member_id: uuid.UUID
    ) -> SwipeResult:
        """
        Record a creator swiping right on a member before (or after) the member swipes.

        Connects immediately when the member has already swiped right.
        """
        creator, member = await self._get_participants(creator_id, member_id)

        def apply(connection: Connection) -> SwipeResult:
            if connection.status != ConnectionStatus.PENDING.value:
                raise InvalidState(
                    f"Cannot express interest in a {connection.status} connection",
                    connection_id=connection.id,
                )
            if connection.creator_swipe_direction is not None:
                raise InvalidState(
                    "Creator already swiped on this member",
                    connection_id=connection.id,
                )
            if connection.member_swipe_direction == SwipeDirection.LEFT.value:
                raise InvalidState(
                    "Member passed on this creator",
                    connection_id=connection.id,
                )

            now = utcnow()
            connection.creator_swipe_direction = SwipeDirection.RIGHT.value
            connection.creator_swiped_at = now

            result = SwipeResult(connection=connection)
            if connection.member_swipe_direction in ACCEPTED_SWIPES:
                _establish(connection, now)
                result.connected = True
            return result

        result = await self._create_or_mutate(
            creator, member, ConnectionSource.CREATOR_INTEREST, apply
        )
        log.info(
            "creator_interest_recorded",
            connection_id=result.connection.id,
            creator_id=creator_id,
            member_id=member_id,
            connected=result.connected,
        )
        self._emit(result)
        return result

    async def record_creator_response(
        self, creator_id: uuid.UUID, connection_id: uuid.UUID, direction: str
    ) -> SwipeResult:
        """Accept (right) or decline (left) a pending like."""
        _validate_direction(direction)
        connection = await load_connection(self.db, connection_id)
        if connection.creator_id != creator_id:
            raise Unauthorized(
                "Creator is not a participant in this connection",
                connection_id=connection_id,
            )

        def apply(connection: Connection) -> SwipeResult:
            if (
                connection.status != ConnectionStatus.PENDING.value
                or connection.member_swipe_direction not in ACCEPTED_SWIPES
                or connection.creator_swipe_direction is not None
            ):
                raise InvalidState(
                    "Connection is not awaiting a creator response",
                    connection_id=connection.id,
                    status=connection.status,
                )

            now = utcnow()
            connection.creator_swipe_direction = direction
            connection.creator_swiped_at = now
            result = SwipeResult(connection=connection)
            if direction == SwipeDirection.RIGHT.value:
                _establish(connection, now)
                result.connected = True
            else:
                connection.status = ConnectionStatus.DISCONNECTED.value
                connection.disconnected_at = now
            return result

        _, result = await mutate_connection(self.db, connection_id, apply)
        log.info(
            "creator_responded",
            connection_id=connection_id,
            creator_id=creator_id,
            direction=direction,
        )
        self._emit(result)
        return result

    async def disconnect(self, actor: Actor, connection_id: uuid.UUID) -> Connection:
        """
        End a connection from either side.

        Disconnecting an already disconnected record is a no-op.
        """
        connection = await load_connection(self.db, connection_id)
        if not is_participant(actor, connection):
            raise Unauthorized(
                "Actor is not a participant in this connection",
                connection_id=connection_id,
            )

        def apply(connection: Connection) -> bool:
            if connection.status == ConnectionStatus.BLOCKED.value:
                raise InvalidState("Connection is blocked", connection_id=connection.id)
            if connection.status == ConnectionStatus.DISCONNECTED.value:
                return False
            connection.status = ConnectionStatus.DISCONNECTED.value
            connection.disconnected_at = utcnow()
            return True

        connection, changed = await mutate_connection(self.db, connection_id, apply)
        if changed:
            log.info(
                "connection_disconnected",
                connection_id=connection_id,
                by=actor.party.value,
            )
        return connection

    async def find_or_create_direct_connection(
        self, creator_id: uuid.UUID, member_id: uuid.UUID
    ) -> tuple[Connection, bool]:
        """
        Open a connection from the creator side without a swipe.

        Returns:
            (connection, created). An existing record is returned unchanged.
        """
        creator, member = await self._get_participants(creator_id, member_id)

        existing = await self._get_pair(creator_id, member_id)
        if existing is not None:
            return existing, False

        now = utcnow()
        connection = Connection.new_pair(
            creator_id, member_id, ConnectionSource.CREATOR_INITIATED, now
        )
        compatibility = self.scorer.score(member, creator)
        connection.compatibility_score = compatibility.score
        connection.compatibility_factors = compatibility.factors()
        connection.creator_swipe_direction = SwipeDirection.RIGHT.value
        connection.creator_swiped_at = now
        _establish(connection, now)
        self.db.add(connection)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self._get_pair(creator_id, member_id)
            if existing is None:
                raise ConstraintViolation(
                    "Could not create connection for pair",
                    creator_id=creator_id,
                    member_id=member_id,
                )
            return existing, False

        log.info(
            "direct_connection_created",
            connection_id=connection.id,
            creator_id=creator_id,
            member_id=member_id,
        )
        self.signals.connection_established(connection, instant=True)
        return connection, True

    async def update_notification_preferences(
        self, actor: Actor, connection_id: uuid.UUID, prefs: dict[str, bool]
    ) -> Connection:
        """Merge known notification keys into the actor's side of the connection."""
        connection = await load_connection(self.db, connection_id)
        if not is_participant(actor, connection):
            raise Unauthorized(
                "Actor is not a participant in this connection",
                connection_id=connection_id,
            )

        if isinstance(actor, MemberActor):
            allowed = MEMBER_PREFERENCE_DEFAULTS
        elif isinstance(actor, CreatorActor):
            allowed = CREATOR_PREFERENCE_DEFAULTS
        else:
            raise Unauthorized("Unknown actor", connection_id=connection_id)
        updates = {key: bool(value) for key, value in prefs.items() if key in allowed}

        def apply(connection: Connection) -> None:
            if isinstance(actor, MemberActor):
                connection.member_preferences = {
                    **(connection.member_preferences or MEMBER_PREFERENCE_DEFAULTS),
                    **updates,
                }
            else:
                connection.creator_preferences = {
                    **(connection.creator_preferences or CREATOR_PREFERENCE_DEFAULTS),
                    **updates,
                }

        connection, _ = await mutate_connection(self.db, connection_id, apply)
        return connection
