"""Who is performing an operation on a connection."""

import uuid
from dataclasses import dataclass

from swipematch.models import Connection, Party


@dataclass(frozen=True)
class MemberActor:
    """A member acting on their own side of a connection."""

    member_id: uuid.UUID

    @property
    def party(self) -> Party:
        return Party.MEMBER


@dataclass(frozen=True)
class CreatorActor:
    """A creator acting on their own side of a connection."""

    creator_id: uuid.UUID

    @property
    def party(self) -> Party:
        return Party.CREATOR


Actor = MemberActor | CreatorActor


def is_participant(actor: Actor, connection: Connection) -> bool:
    """True when the actor is one of the two sides of the connection."""
    if isinstance(actor, MemberActor):
        return connection.member_id == actor.member_id
    if isinstance(actor, CreatorActor):
        return connection.creator_id == actor.creator_id
    return False
