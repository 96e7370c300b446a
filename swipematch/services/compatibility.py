"""Pairwise compatibility between a member and a creator.

The score is a simple additive heuristic:
- Base of 50
- +30 when the member's orientation allows the creator's gender
- +5 per shared interest
- +10 for an age gap under 5 years, +5 under 10
Capped at 100.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol

from swipematch.models import Orientation


class Profile(Protocol):
    gender: str | None
    orientation: str | None
    age: int | None
    interests: list | None


def orientation_allows(
    member_orientation: str | None,
    member_gender: str | None,
    candidate_gender: str | None,
) -> bool:
    """
    Whether a member with this orientation is shown / matched with a gender.

    Straight members see other genders, gay and lesbian members see their own
    gender, everyone else sees all genders.
    """
    if member_orientation == Orientation.STRAIGHT.value:
        return candidate_gender != member_gender
    if member_orientation in (Orientation.GAY.value, Orientation.LESBIAN.value):
        return candidate_gender == member_gender
    return True


def is_active_now(last_active_at: datetime | None, now: datetime) -> bool:
    """Active within the last 15 minutes."""
    if last_active_at is None:
        return False
    return now - last_active_at < timedelta(minutes=15)


@dataclass
class CompatibilityResult:
    """Result of scoring one member/creator pair."""

    score: int  # 0 - 100
    orientation_match: bool
    shared_interests: list[str] = field(default_factory=list)
    age_difference: int | None = None

    def factors(self) -> dict:
        return {
            "orientation_match": self.orientation_match,
            "shared_interests": self.shared_interests,
            "age_difference": self.age_difference,
        }

    def to_dict(self) -> dict:
        return {"score": self.score, **self.factors()}


class CompatibilityScorer:
    """Score member/creator pairs and predict connection success."""

    BASE_SCORE = 50
    ORIENTATION_BONUS = 30
    SHARED_INTEREST_BONUS = 5
    CLOSE_AGE_BONUS = 10  # gap < 5 years
    NEAR_AGE_BONUS = 5  # gap < 10 years
    MAX_SCORE = 100
    MAX_PREDICTION = 95

    def score(self, member: Profile, creator: Profile) -> CompatibilityResult:
        score = self.BASE_SCORE

        orientation_match = orientation_allows(
            member.orientation, member.gender, creator.gender
        )
        if orientation_match:
            score += self.ORIENTATION_BONUS

        creator_interests = set(creator.interests or [])
        shared = [i for i in (member.interests or []) if i in creator_interests]
        score += len(shared) * self.SHARED_INTEREST_BONUS

        age_difference = None
        if member.age is not None and creator.age is not None:
            age_difference = abs(member.age - creator.age)
            if age_difference < 5:
                score += self.CLOSE_AGE_BONUS
            elif age_difference < 10:
                score += self.NEAR_AGE_BONUS

        return CompatibilityResult(
            score=min(self.MAX_SCORE, score),
            orientation_match=orientation_match,
            shared_interests=shared,
            age_difference=age_difference,
        )

    def predict_connection(
        self,
        compatibility: CompatibilityResult,
        creator_last_active_at: datetime | None,
        now: datetime,
        rng: random.Random,
    ) -> float:
        """
        Estimate the chance (0-95) that a right swipe turns into a connection.

        ``now`` and ``rng`` are injected so the result is reproducible.
        """
        activity = 20 if is_active_now(creator_last_active_at, now) else 0
        return min(
            self.MAX_PREDICTION,
            compatibility.score * 0.7 + activity + rng.uniform(0, 10),
        )
