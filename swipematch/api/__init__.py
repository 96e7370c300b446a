"""SwipeMatch API routes."""

from swipematch.api.browse import router as browse_router
from swipematch.api.engagement import router as engagement_router
from swipematch.api.moderation import router as moderation_router
from swipematch.api.reports import router as reports_router
from swipematch.api.swipes import router as swipes_router

__all__ = [
    "browse_router",
    "engagement_router",
    "moderation_router",
    "reports_router",
    "swipes_router",
]
