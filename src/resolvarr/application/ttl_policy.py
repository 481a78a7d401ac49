"""Cache lifetimes for resolved content."""

from __future__ import annotations

from datetime import datetime

# Weekdays get the shorter TTL so new releases show up sooner.
WEEKEND_EPISODES_TTL = 2 * 60 * 60
WEEKDAY_EPISODES_TTL = 30 * 60

TRENDING_TTL = 60 * 60
SEARCH_TTL = 60 * 60
SOURCES_TTL = 15 * 60


def is_weekend(now: datetime) -> bool:
    return now.weekday() >= 5  # Saturday=5, Sunday=6


def episodes_ttl(now: datetime) -> int:
    """TTL in seconds for episode lists and info pages fetched at *now*."""
    return WEEKEND_EPISODES_TTL if is_weekend(now) else WEEKDAY_EPISODES_TTL
