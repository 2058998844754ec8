"""
Prometheus metrics definitions for the progression engine.

This module defines all metrics collected by the engine, organized by category:
- Event metrics: Events processed, processing time
- Reward metrics: XP awarded, achievements unlocked, challenges completed
- Storage metrics: Persistence failures, decode fallbacks

Metrics are registered in the default prometheus_client registry; the host
application decides how to expose them.
"""

import logging
import sys
from prometheus_client import Counter, Gauge, Histogram, Info

logger = logging.getLogger(__name__)

# =============================================================================
# Event Metrics
# =============================================================================

progression_events_processed_total = Counter(
    "progression_events_processed_total",
    "Total gamification events processed",
    ["event_type", "status"],  # status: success/error
)

progression_event_duration_seconds = Histogram(
    "progression_event_duration_seconds",
    "Event processing time in seconds (including persistence)",
    ["event_type"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

# =============================================================================
# Reward Metrics
# =============================================================================

progression_xp_awarded_total = Counter(
    "progression_xp_awarded_total",
    "Total XP awarded",
    ["source"],  # source: event type, achievement, challenge, quest, manual
)

progression_achievements_unlocked_total = Counter(
    "progression_achievements_unlocked_total",
    "Total achievements unlocked",
    ["category"],
)

progression_challenges_completed_total = Counter(
    "progression_challenges_completed_total",
    "Total weekly challenges completed",
    ["difficulty"],
)

progression_streaks_active = Gauge(
    "progression_streaks_active",
    "Current count of each streak",
    ["streak_type"],
)

# =============================================================================
# Storage Metrics
# =============================================================================

progression_persistence_failures_total = Counter(
    "progression_persistence_failures_total",
    "State writes that failed and will be retried on the next operation",
)

progression_decode_fallbacks_total = Counter(
    "progression_decode_fallbacks_total",
    "Persisted state slices that failed to decode and were reset to defaults",
    ["slice"],
)

# =============================================================================
# Application Info
# =============================================================================

app_info = Info(
    "progression_app",
    "Application information",
)


def init_metrics(catalog_version: int) -> None:
    """
    Initialize metrics with application information.

    This should be called once at application startup to set
    static metadata about the application.
    """
    app_info.info(
        {
            "catalog_version": str(catalog_version),
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
        }
    )

    logger.info("Prometheus metrics initialized")
