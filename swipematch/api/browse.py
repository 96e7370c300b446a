"""Browse stack endpoint."""

import random
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.api.common import parse_uuid
from swipematch.database import get_db
from swipematch.services.discovery import BrowseFilters, DiscoveryRanker, StackEntry

router = APIRouter(prefix="/api/v1/browse", tags=["browse"])


# ============ Schemas ============


class StackCreator(BaseModel):
    """A creator card in the browse stack."""

    id: str
    username: str
    display_name: str
    age: int | None
    gender: str | None
    orientation: str | None
    body_type: str | None
    ethnicity: str | None
    interests: list[str]
    verified: bool
    active_now: bool
    ranking_score: float
    compatibility: dict
    connection_prediction: float
    browse_context: dict


class BrowseStackResponse(BaseModel):
    member_id: str
    session_id: str
    filters: dict
    stack: list[StackCreator]


# ============ Helper Functions ============


def _entry_to_card(entry: StackEntry, filters: BrowseFilters, session_id: str) -> StackCreator:
    creator = entry.creator
    return StackCreator(
        id=str(creator.id),
        username=creator.username,
        display_name=creator.display_name or creator.username,
        age=creator.age,
        gender=creator.gender,
        orientation=creator.orientation,
        body_type=creator.body_type,
        ethnicity=creator.ethnicity,
        interests=creator.interests or [],
        verified=creator.is_verified,
        active_now=entry.active_now,
        ranking_score=round(entry.ranking_score, 2),
        compatibility=entry.compatibility.to_dict(),
        connection_prediction=round(entry.connection_prediction, 1),
        browse_context=entry.browse_context(filters, session_id),
    )


# ============ Endpoints ============


@router.get("/{member_id}/stack", response_model=BrowseStackResponse)
async def get_browse_stack(
    member_id: str,
    orientation: Annotated[str | None, Query(description="Only creators with this orientation")] = None,
    min_age: Annotated[int, Query(ge=18, le=99)] = 18,
    max_age: Annotated[int, Query(ge=18, le=99)] = 99,
    body_type: Annotated[list[str] | None, Query(description="Allowed body types")] = None,
    ethnicity: Annotated[list[str] | None, Query(description="Allowed ethnicities")] = None,
    db: AsyncSession = Depends(get_db),
) -> BrowseStackResponse:
    """
    Build the member's browse stack.

    Creators the member already swiped on never appear. Each card carries a
    ``browse_context`` to send back with the swipe.
    """
    member_uuid = parse_uuid(member_id, "member_id")
    filters = BrowseFilters(
        orientation=orientation,
        min_age=min_age,
        max_age=max_age,
        body_types=body_type or [],
        ethnicities=ethnicity or [],
    )

    ranker = DiscoveryRanker(db, rng=random.Random())
    stack = await ranker.build_stack(member_uuid, filters)
    session_id = f"session_{uuid.uuid4().hex[:12]}"

    return BrowseStackResponse(
        member_id=member_id,
        session_id=session_id,
        filters=filters.to_dict(),
        stack=[_entry_to_card(entry, filters, session_id) for entry in stack],
    )
