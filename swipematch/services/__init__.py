"""Connection engine services."""

from swipematch.services.actors import CreatorActor, MemberActor
from swipematch.services.compatibility import CompatibilityResult, CompatibilityScorer
from swipematch.services.discovery import BrowseFilters, DiscoveryRanker, StackEntry
from swipematch.services.engagement import EngagementAggregator, EngagementEvent, EventKind
from swipematch.services.health import HealthAssessment, assess_health
from swipematch.services.moderation import ModerationService
from swipematch.services.reporting import ConnectionFilter, ConnectionQueryService
from swipematch.services.signals import LoggingSignalSink, SignalSink
from swipematch.services.swipes import SwipeResult, SwipeService, SwipeSession

__all__ = [
    "MemberActor",
    "CreatorActor",
    "CompatibilityScorer",
    "CompatibilityResult",
    "DiscoveryRanker",
    "BrowseFilters",
    "StackEntry",
    "SwipeService",
    "SwipeSession",
    "SwipeResult",
    "EngagementAggregator",
    "EngagementEvent",
    "EventKind",
    "HealthAssessment",
    "assess_health",
    "ConnectionQueryService",
    "ConnectionFilter",
    "ModerationService",
    "SignalSink",
    "LoggingSignalSink",
]
