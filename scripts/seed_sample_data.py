"""Seed script to populate dev database with sample creators, members and connections."""

import asyncio
import random
from datetime import timedelta

from sqlalchemy import select

from swipematch.database import async_session_factory, create_schema, engine, utcnow
from swipematch.models import Creator, Gender, Member, Orientation, Party
from swipematch.services import EngagementAggregator, EngagementEvent, EventKind, SwipeService

INTERESTS = ["fitness", "gaming", "travel", "music", "cooking", "fashion", "art", "yoga"]
BODY_TYPES = ["slim", "athletic", "average", "curvy"]
ETHNICITIES = ["asian", "black", "hispanic", "white", "mixed"]


async def seed_database():
    """Seed the database with sample data for development."""

    # Create tables if they don't exist
    await create_schema(engine)

    rng = random.Random(42)
    now = utcnow()

    async with async_session_factory() as db:
        # Check if we already have data
        existing = await db.execute(select(Creator).limit(1))
        if existing.scalar_one_or_none():
            print("Database already has data. Skipping seed.")
            return

        print("Seeding database with sample data...")

        creators = []
        for i in range(12):
            creator = Creator(
                username=f"creator_{i:02d}",
                display_name=f"Creator {i + 1}",
                gender=Gender.FEMALE.value if i % 3 else Gender.MALE.value,
                orientation=rng.choice([o.value for o in Orientation]),
                age=21 + i * 2,
                body_type=BODY_TYPES[i % len(BODY_TYPES)],
                ethnicity=ETHNICITIES[i % len(ETHNICITIES)],
                interests=rng.sample(INTERESTS, 3),
                is_active=True,
                is_verified=i % 5 != 4,
                show_in_browse=True,
                auto_connect_enabled=i % 4 == 0,
                last_active_at=now - timedelta(minutes=rng.randint(1, 60 * 24 * 5)),
                last_content_at=now - timedelta(days=rng.randint(0, 14)),
            )
            db.add(creator)
            creators.append(creator)

        members = []
        for i in range(20):
            member = Member(
                username=f"member_{i:02d}",
                gender=Gender.MALE.value if i % 4 else Gender.FEMALE.value,
                orientation=Orientation.STRAIGHT.value if i % 3 else Orientation.BISEXUAL.value,
                age=20 + i,
                interests=rng.sample(INTERESTS, 3),
            )
            db.add(member)
            members.append(member)

        await db.commit()
        print(f"Created {len(creators)} creators and {len(members)} members")

        swipes = SwipeService(db)
        engagement = EngagementAggregator(db)
        connected = 0

        for member in members:
            for creator in rng.sample(creators, 4):
                direction = "right" if rng.random() < 0.7 else "left"
                result = await swipes.record_member_swipe(
                    member.id,
                    creator.id,
                    direction,
                    super_like=direction == "right" and rng.random() < 0.1,
                )
                if result.connection.status == "pending" and direction == "right":
                    if rng.random() < 0.5:
                        result = await swipes.record_creator_response(
                            creator.id, result.connection.id, "right"
                        )

                if not result.connected:
                    continue
                connected += 1

                connection_id = result.connection.id
                for _ in range(rng.randint(1, 6)):
                    await engagement.apply_event(
                        connection_id,
                        EngagementEvent(kind=EventKind.MESSAGE_SENT, sender=Party.MEMBER),
                    )
                    await engagement.apply_event(
                        connection_id,
                        EngagementEvent(kind=EventKind.MESSAGE_SENT, sender=Party.CREATOR),
                    )
                if rng.random() < 0.6:
                    await engagement.apply_event(
                        connection_id,
                        EngagementEvent(kind=EventKind.CONTENT_UNLOCKED, amount=4.99),
                    )
                if rng.random() < 0.3:
                    await engagement.apply_event(
                        connection_id,
                        EngagementEvent(kind=EventKind.TIP_SENT, amount=rng.choice([5, 10, 25])),
                    )

        print(f"Created {connected} connections with engagement")
        print("\nDatabase seeded successfully!")
        print("\nUse these IDs for testing:")
        print(f"  Creator ID: {creators[0].id}")
        print(f"  Member ID:  {members[1].id}")


if __name__ == "__main__":
    asyncio.run(seed_database())
