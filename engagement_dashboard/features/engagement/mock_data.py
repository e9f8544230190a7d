"""Synthetic engagement batches, regenerated on every request without an upload."""

import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from engagement_dashboard.models.engagement import (
    ENGAGEMENT_SOURCES,
    ENGAGEMENT_TYPES,
    EngagementRecord,
    coerce_source,
    coerce_type,
)

MOCK_WINDOW_DAYS = 30


def generate_engagements(
    count: int,
    *,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[EngagementRecord]:
    """
    Generate a fresh batch of mock records.

    Args:
        count: Number of records
        now: Upper bound for timestamps (defaults to current UTC time)
        rng: Random source; pass a seeded Random for deterministic output

    Returns:
        Records with ids 1..count, newest first
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    rng = rng or random.Random()

    offsets = sorted(rng.uniform(0, MOCK_WINDOW_DAYS * 86400) for _ in range(count))
    records = []
    for idx, offset in enumerate(offsets, start=1):
        records.append(
            EngagementRecord(
                id=idx,
                type=coerce_type(rng.choice(ENGAGEMENT_TYPES)),
                source=coerce_source(rng.choice(ENGAGEMENT_SOURCES)),
                timestamp=now - timedelta(seconds=offset),
                user_id=f"user_{rng.randint(1, 500):04d}",
                score=round(rng.uniform(0, 100), 1),
            )
        )
    return records
