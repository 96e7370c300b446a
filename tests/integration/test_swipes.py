"""
Tests for the swipe state machine.
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from swipematch.database import utcnow
from swipematch.errors import (
    AlreadySwiped,
    InvalidState,
    InvalidSwipe,
    NotFound,
    Unauthorized,
)
from swipematch.models import Connection, ConnectionSource, ConnectionStatus
from swipematch.services.actors import CreatorActor, MemberActor
from swipematch.services.moderation import ModerationService
from swipematch.services.signals import LikePriority
from swipematch.services.swipes import SwipeService, SwipeSession, _establish


async def _count_pairs(db, creator_id, member_id) -> int:
    result = await db.execute(
        select(func.count(Connection.id)).where(
            Connection.creator_id == creator_id,
            Connection.member_id == member_id,
        )
    )
    return result.scalar()


@pytest.mark.asyncio
async def test_auto_connect_right_swipe_connects_instantly(db, make_creator, make_member, signals):
    creator = await make_creator(auto_connect_enabled=True)
    member = await make_member()

    result = await SwipeService(db, signals=signals).record_member_swipe(
        member.id, creator.id, "right"
    )

    connection = result.connection
    assert result.connected is True
    assert result.instant is True
    assert connection.status == ConnectionStatus.CONNECTED.value
    assert connection.connected_at is not None
    assert connection.creator_swipe_direction == "right"
    assert connection.creator_auto_connected is True
    assert signals.established == [(connection.id, True)]
    assert signals.likes == []


@pytest.mark.asyncio
async def test_mutual_swipe_connects_after_creator_response(db, make_creator, make_member, signals):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db, signals=signals)

    liked = await service.record_member_swipe(member.id, creator.id, "right")
    assert liked.connection.status == ConnectionStatus.PENDING.value
    assert liked.connection.connected_at is None
    assert signals.likes == [(liked.connection.id, LikePriority.NORMAL)]

    accepted = await service.record_creator_response(creator.id, liked.connection.id, "right")

    assert accepted.connected is True
    assert accepted.instant is False
    assert accepted.connection.status == ConnectionStatus.CONNECTED.value
    assert accepted.connection.connected_at is not None
    assert accepted.connection.health_status == "thriving"
    assert accepted.connection.churn_risk == 0
    assert signals.established == [(liked.connection.id, False)]


@pytest.mark.asyncio
async def test_repeat_swipe_raises_already_swiped(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    first = await service.record_member_swipe(member.id, creator.id, "left")
    version = first.connection.version_id

    with pytest.raises(AlreadySwiped):
        await service.record_member_swipe(member.id, creator.id, "right")

    await db.refresh(first.connection)
    assert first.connection.member_swipe_direction == "left"
    assert first.connection.version_id == version
    assert await _count_pairs(db, creator.id, member.id) == 1


@pytest.mark.asyncio
async def test_left_swipe_only_records(db, make_creator, make_member, signals):
    creator = await make_creator(auto_connect_enabled=True)
    member = await make_member()

    result = await SwipeService(db, signals=signals).record_member_swipe(
        member.id, creator.id, "left"
    )

    assert result.connected is False
    assert result.connection.status == ConnectionStatus.PENDING.value
    assert result.connection.creator_swipe_direction is None
    assert signals.likes == []
    assert signals.established == []


@pytest.mark.asyncio
async def test_super_like_is_stored_and_prioritised(db, make_creator, make_member, signals):
    creator = await make_creator()
    member = await make_member()

    result = await SwipeService(db, signals=signals).record_member_swipe(
        member.id,
        creator.id,
        "right",
        super_like=True,
        session=SwipeSession(seconds=42.5, viewed_photos=4, read_bio=True),
        browse_context={"session_id": "s1", "algorithm": {"score": 91}},
    )

    connection = result.connection
    assert connection.member_swipe_direction == "super"
    assert connection.member_super_like is True
    assert connection.member_viewed_photos == 4
    assert connection.member_read_bio is True
    assert connection.browse_context["session_id"] == "s1"
    assert connection.compatibility_score is not None
    assert signals.likes == [(connection.id, LikePriority.HIGH)]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "direction, super_like",
    [("up", False), ("super", False), ("left", True)],
)
async def test_invalid_swipes_are_rejected(db, make_creator, make_member, direction, super_like):
    creator = await make_creator()
    member = await make_member()

    with pytest.raises(InvalidSwipe):
        await SwipeService(db).record_member_swipe(
            member.id, creator.id, direction, super_like=super_like
        )

    assert await _count_pairs(db, creator.id, member.id) == 0


@pytest.mark.asyncio
async def test_unknown_participants_raise_not_found(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    with pytest.raises(NotFound):
        await service.record_member_swipe(uuid.uuid4(), creator.id, "right")
    with pytest.raises(NotFound):
        await service.record_member_swipe(member.id, uuid.uuid4(), "right")


@pytest.mark.asyncio
async def test_creator_interest_then_member_right_swipe_connects(
    db, make_creator, make_member, signals
):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db, signals=signals)

    interest = await service.record_creator_interest(creator.id, member.id)
    assert interest.connected is False
    assert interest.connection.creator_swipe_direction == "right"
    assert interest.connection.source == "creator_interest"

    swipe = await service.record_member_swipe(member.id, creator.id, "right")

    assert swipe.connected is True
    assert swipe.instant is False
    assert swipe.connection.id == interest.connection.id
    assert swipe.connection.status == ConnectionStatus.CONNECTED.value
    assert signals.established == [(swipe.connection.id, False)]


@pytest.mark.asyncio
async def test_creator_interest_after_member_like_connects(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    await service.record_member_swipe(member.id, creator.id, "right")
    result = await service.record_creator_interest(creator.id, member.id)

    assert result.connected is True
    assert await _count_pairs(db, creator.id, member.id) == 1


@pytest.mark.asyncio
async def test_creator_interest_rejected_after_member_pass(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    await service.record_member_swipe(member.id, creator.id, "left")
    with pytest.raises(InvalidState):
        await service.record_creator_interest(creator.id, member.id)


@pytest.mark.asyncio
async def test_creator_decline_disconnects(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    liked = await service.record_member_swipe(member.id, creator.id, "right")
    declined = await service.record_creator_response(creator.id, liked.connection.id, "left")

    assert declined.connected is False
    assert declined.connection.status == ConnectionStatus.DISCONNECTED.value
    assert declined.connection.disconnected_at is not None
    assert declined.connection.connected_at is None


@pytest.mark.asyncio
async def test_declined_record_keeps_its_disconnect_time(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    liked = await service.record_member_swipe(member.id, creator.id, "right")
    connection_id = liked.connection.id
    declined = await service.record_creator_response(creator.id, connection_id, "left")
    disconnected_at = declined.connection.disconnected_at

    with pytest.raises(InvalidState):
        await service.record_creator_interest(creator.id, member.id)
    with pytest.raises(InvalidState):
        await service.record_creator_response(creator.id, connection_id, "right")

    connection = await db.get(Connection, connection_id)
    assert connection.status == ConnectionStatus.DISCONNECTED.value
    assert connection.disconnected_at == disconnected_at


def test_establishing_never_clears_lifecycle_timestamps():
    now = utcnow()
    connection = Connection.new_pair(
        uuid.uuid4(), uuid.uuid4(), ConnectionSource.BROWSE, now - timedelta(days=2)
    )
    connection.disconnected_at = now - timedelta(days=1)

    _establish(connection, now)

    assert connection.status == ConnectionStatus.CONNECTED.value
    assert connection.disconnected_at == now - timedelta(days=1)
    assert (connection.health_status, connection.churn_risk) == ("thriving", 0)
    assert connection.health_computed_at == now


@pytest.mark.asyncio
async def test_creator_response_validation(db, make_creator, make_member):
    creator = await make_creator()
    other_creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    with pytest.raises(NotFound):
        await service.record_creator_response(creator.id, uuid.uuid4(), "right")

    passed = await service.record_member_swipe(member.id, creator.id, "left")
    with pytest.raises(Unauthorized):
        await service.record_creator_response(other_creator.id, passed.connection.id, "right")
    with pytest.raises(InvalidState):
        await service.record_creator_response(creator.id, passed.connection.id, "right")


@pytest.mark.asyncio
async def test_creator_cannot_respond_twice(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    liked = await service.record_member_swipe(member.id, creator.id, "right")
    await service.record_creator_response(creator.id, liked.connection.id, "right")

    with pytest.raises(InvalidState):
        await service.record_creator_response(creator.id, liked.connection.id, "left")


@pytest.mark.asyncio
async def test_swipe_on_disconnected_record_is_invalid(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    interest = await service.record_creator_interest(creator.id, member.id)
    await service.disconnect(CreatorActor(creator.id), interest.connection.id)

    with pytest.raises(InvalidState):
        await service.record_member_swipe(member.id, creator.id, "right")


@pytest.mark.asyncio
async def test_disconnect_is_idempotent(db, make_creator, make_member):
    creator = await make_creator(auto_connect_enabled=True)
    member = await make_member()
    service = SwipeService(db)

    result = await service.record_member_swipe(member.id, creator.id, "right")
    first = await service.disconnect(MemberActor(member.id), result.connection.id)
    disconnected_at = first.disconnected_at

    second = await service.disconnect(CreatorActor(creator.id), result.connection.id)

    assert second.status == ConnectionStatus.DISCONNECTED.value
    assert second.disconnected_at == disconnected_at


@pytest.mark.asyncio
async def test_disconnect_requires_participant(db, make_creator, make_member):
    creator = await make_creator(auto_connect_enabled=True)
    member = await make_member()
    stranger = await make_member()
    service = SwipeService(db)

    result = await service.record_member_swipe(member.id, creator.id, "right")

    with pytest.raises(Unauthorized):
        await service.disconnect(MemberActor(stranger.id), result.connection.id)


@pytest.mark.asyncio
async def test_blocked_is_terminal(db, make_creator, make_member):
    creator = await make_creator(auto_connect_enabled=True)
    member = await make_member()
    service = SwipeService(db)

    result = await service.record_member_swipe(member.id, creator.id, "right")
    await ModerationService(db).block(result.connection.id, reason="spam", reported=True)

    with pytest.raises(InvalidState):
        await service.disconnect(MemberActor(member.id), result.connection.id)
    with pytest.raises(InvalidState):
        await service.record_creator_interest(creator.id, member.id)


@pytest.mark.asyncio
async def test_direct_connection_find_or_create(db, make_creator, make_member, signals):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db, signals=signals)

    connection, created = await service.find_or_create_direct_connection(creator.id, member.id)
    assert created is True
    assert connection.status == ConnectionStatus.CONNECTED.value
    assert connection.source == "creator_initiated"
    assert connection.creator_swipe_direction == "right"

    again, created_again = await service.find_or_create_direct_connection(creator.id, member.id)
    assert created_again is False
    assert again.id == connection.id
    assert len(signals.established) == 1


@pytest.mark.asyncio
async def test_direct_connection_returns_existing_record_unchanged(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    passed = await service.record_member_swipe(member.id, creator.id, "left")
    connection, created = await service.find_or_create_direct_connection(creator.id, member.id)

    assert created is False
    assert connection.id == passed.connection.id
    assert connection.status == ConnectionStatus.PENDING.value


@pytest.mark.asyncio
async def test_concurrent_first_insert_is_merged(
    db, other_db, make_creator, make_member, monkeypatch
):
    """A losing insert retries against the row created by the winner."""
    creator = await make_creator()
    member = await make_member()

    await SwipeService(db).record_member_swipe(member.id, creator.id, "right")

    racing = SwipeService(other_db)
    real_lookup = racing._get_pair
    calls = []

    async def stale_lookup(creator_id, member_id):
        calls.append(1)
        if len(calls) == 1:
            return None
        return await real_lookup(creator_id, member_id)

    monkeypatch.setattr(racing, "_get_pair", stale_lookup)

    result = await racing.record_creator_interest(creator.id, member.id)

    assert len(calls) == 2
    assert result.connected is True
    assert await _count_pairs(other_db, creator.id, member.id) == 1


@pytest.mark.asyncio
async def test_no_path_reaches_connected_without_acceptance(db, make_creator, make_member):
    creator = await make_creator()
    member = await make_member()
    service = SwipeService(db)

    passed = await service.record_member_swipe(member.id, creator.id, "left")
    assert passed.connection.status == ConnectionStatus.PENDING.value
    with pytest.raises(InvalidState):
        await service.record_creator_response(creator.id, passed.connection.id, "right")

    await db.refresh(passed.connection)
    assert passed.connection.status != ConnectionStatus.CONNECTED.value


@pytest.mark.asyncio
async def test_notification_preferences_merge_known_keys(db, make_creator, make_member):
    creator = await make_creator(auto_connect_enabled=True)
    member = await make_member()
    service = SwipeService(db)

    result = await service.record_member_swipe(member.id, creator.id, "right")
    connection = await service.update_notification_preferences(
        MemberActor(member.id),
        result.connection.id,
        {"new_message": False, "not_a_setting": True},
    )

    assert connection.member_preferences["new_message"] is False
    assert connection.member_preferences["go_live"] is True
    assert "not_a_setting" not in connection.member_preferences
    assert connection.creator_preferences["tip"] is True

    connection = await service.update_notification_preferences(
        CreatorActor(creator.id), result.connection.id, {"tip": False}
    )
    assert connection.creator_preferences["tip"] is False
    assert connection.member_preferences["new_message"] is False
