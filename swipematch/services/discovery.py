"""Browse stack generation for members.

Candidates are fetched with hard filters applied in SQL, then ranked by a
recency/verification score with a bounded random term and finally passed
through a weighted shuffle. All randomness comes from the ranker's own
``random.Random`` so a fixed seed reproduces the same stack.
"""

import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.config import settings
from swipematch.database import utcnow
from swipematch.errors import NotFound
from swipematch.models import Connection, Creator, Member, Orientation
from swipematch.observability import get_logger
from swipematch.services.compatibility import (
    CompatibilityResult,
    CompatibilityScorer,
    is_active_now,
)

log = get_logger(__name__)

MIN_AGE = 18
MAX_AGE = 99


@dataclass
class BrowseFilters:
    """Member-chosen hard filters for a browse session."""

    orientation: str | None = None
    min_age: int = MIN_AGE
    max_age: int = MAX_AGE
    body_types: list[str] = field(default_factory=list)
    ethnicities: list[str] = field(default_factory=list)

    @property
    def narrows_age(self) -> bool:
        return (self.min_age, self.max_age) != (MIN_AGE, MAX_AGE)

    def to_dict(self) -> dict:
        return {
            "orientation": self.orientation,
            "age_range": [self.min_age, self.max_age],
            "body_types": self.body_types,
            "ethnicities": self.ethnicities,
        }


@dataclass
class StackEntry:
    """One creator in a member's browse stack."""

    creator: Creator
    ranking_score: float
    compatibility: CompatibilityResult
    connection_prediction: float
    active_now: bool

    def browse_context(self, filters: BrowseFilters, session_id: str | None) -> dict[str, Any]:
        """Snapshot stored on the connection if the member swipes on this entry."""
        return {
            "session_id": session_id,
            "filters": filters.to_dict(),
            "algorithm": {
                "score": round(self.ranking_score, 2),
                "compatibility": self.compatibility.score,
            },
        }


class DiscoveryRanker:
    """
    Build browse stacks.

    Ranking score per candidate:
    - +50 if active within 15 minutes
    - +30 if verified
    - +40 if content was posted within 7 days
    - + uniform(0, 20) for diversity
    """

    ACTIVE_BONUS = 50
    VERIFIED_BONUS = 30
    FRESH_CONTENT_BONUS = 40
    FRESH_CONTENT_WINDOW = timedelta(days=7)
    DIVERSITY_RANGE = 20
    TOP_PICK_PROBABILITY = 0.7
    SHUFFLE_WINDOW = 5

    def __init__(
        self,
        db: AsyncSession,
        rng: random.Random | None = None,
        scorer: CompatibilityScorer | None = None,
    ):
        self.db = db
        self.rng = rng or random.Random()
        self.scorer = scorer or CompatibilityScorer()

    async def build_stack(
        self,
        member_id: uuid.UUID,
        filters: BrowseFilters | None = None,
        now: datetime | None = None,
        candidate_limit: int | None = None,
        stack_size: int | None = None,
    ) -> list[StackEntry]:
        """
        Produce the ordered stack shown to a member.

        Args:
            member_id: Member browsing
            filters: Hard filters (defaults to no restriction beyond age 18-99)
            now: Reference time for recency bonuses
            candidate_limit: Max candidates fetched (default from settings)
            stack_size: Max entries returned (default from settings)

        Returns:
            Ordered list of StackEntry
        """
        filters = filters or BrowseFilters()
        now = now or utcnow()
        candidate_limit = candidate_limit or settings.browse_candidate_limit
        stack_size = stack_size or settings.browse_stack_size

        member = await self.db.get(Member, member_id)
        if member is None:
            raise NotFound("Member not found", member_id=member_id)

        candidates = await self.eligible_creators(member, filters, candidate_limit)
        ranked = self.rank(candidates, now)
        shuffled = self.weighted_shuffle(ranked)[:stack_size]

        stack = []
        for creator, ranking_score in shuffled:
            compatibility = self.scorer.score(member, creator)
            stack.append(
                StackEntry(
                    creator=creator,
                    ranking_score=ranking_score,
                    compatibility=compatibility,
                    connection_prediction=self.scorer.predict_connection(
                        compatibility, creator.last_active_at, now, self.rng
                    ),
                    active_now=is_active_now(creator.last_active_at, now),
                )
            )

        log.info(
            "browse_stack_built",
            member_id=member_id,
            candidates=len(candidates),
            shown=len(stack),
        )
        return stack

    async def eligible_creators(
        self, member: Member, filters: BrowseFilters, limit: int
    ) -> list[Creator]:
        """Browsable creators passing the hard filters, minus ones already swiped."""
        swiped = select(Connection.creator_id).where(
            Connection.member_id == member.id,
            Connection.member_swipe_direction.is_not(None),
        )

        query = select(Creator).where(
            Creator.is_active.is_(True),
            Creator.is_verified.is_(True),
            Creator.show_in_browse.is_(True),
            Creator.id.not_in(swiped),
        )

        # Creators without an age only drop out when the member narrowed the range
        if filters.narrows_age:
            query = query.where(Creator.age.between(filters.min_age, filters.max_age))

        if filters.orientation:
            query = query.where(Creator.orientation == filters.orientation)
        if filters.body_types:
            query = query.where(Creator.body_type.in_(filters.body_types))
        if filters.ethnicities:
            query = query.where(Creator.ethnicity.in_(filters.ethnicities))

        # Orientation rule: straight sees other genders, gay/lesbian the same
        if member.orientation == Orientation.STRAIGHT.value:
            query = query.where(Creator.gender != member.gender)
        elif member.orientation in (Orientation.GAY.value, Orientation.LESBIAN.value):
            query = query.where(Creator.gender == member.gender)

        query = query.order_by(Creator.created_at, Creator.id).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    def rank(self, creators: list[Creator], now: datetime) -> list[tuple[Creator, float]]:
        """Score candidates and sort them best-first."""
        scored = []
        for creator in creators:
            score = 0.0
            if is_active_now(creator.last_active_at, now):
                score += self.ACTIVE_BONUS
            if creator.is_verified:
                score += self.VERIFIED_BONUS
            if (
                creator.last_content_at is not None
                and now - creator.last_content_at < self.FRESH_CONTENT_WINDOW
            ):
                score += self.FRESH_CONTENT_BONUS
            score += self.rng.uniform(0, self.DIVERSITY_RANGE)
            scored.append((creator, score))

        # Stable sort keeps the fetch order for exact ties
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored

    def weighted_shuffle(self, ranked: list[tuple[Creator, float]]) -> list[tuple[Creator, float]]:
        """Pop the top element with p=0.7, otherwise a random one of the top five."""
        remaining = list(ranked)
        shuffled = []
        while remaining:
            if self.rng.random() < self.TOP_PICK_PROBABILITY:
                index = 0
            else:
                index = self.rng.randrange(min(self.SHUFFLE_WINDOW, len(remaining)))
            shuffled.append(remaining.pop(index))
        return shuffled
