"""
engagement_dashboard/features/engagement/service.py

Request-scoped engagement queries: snapshot -> filter -> aggregate.
The store is only read here; each call builds new derived structures.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from engagement_dashboard.features.analytics.reducers import summarize
from engagement_dashboard.features.engagement.filters import apply_filters
from engagement_dashboard.features.engagement.mock_data import generate_engagements
from engagement_dashboard.features.engagement.store import EngagementStore
from engagement_dashboard.models.engagement import EngagementRecord, FilterCriteria

logger = logging.getLogger(__name__)

DATA_SOURCE_UPLOADED = "uploaded"
DATA_SOURCE_GENERATED = "generated"


def working_set(
    store: EngagementStore,
    *,
    batch_size: int,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[List[EngagementRecord], str]:
    """
    Snapshot of the active records and where they came from.

    Uploaded records win; otherwise a fresh mock batch is generated per call.
    """
    uploaded = store.read()
    if uploaded is not None:
        return uploaded, DATA_SOURCE_UPLOADED
    return generate_engagements(batch_size, now=now, rng=rng), DATA_SOURCE_GENERATED


def query_engagements(
    store: EngagementStore,
    criteria: FilterCriteria,
    *,
    batch_size: int,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    Build the GET /api/engagement payload.

    Returns:
        {"data": [...], "analytics": {...}, "metadata": {...}}
    """
    now = now or datetime.now(timezone.utc)
    records, data_source = working_set(store, batch_size=batch_size, now=now, rng=rng)

    filtered = apply_filters(records, criteria)
    analytics = summarize(filtered)

    date_range = None
    if criteria.has_date_range:
        date_range = {
            "startDate": criteria.start_date.isoformat(),
            "endDate": criteria.end_date.isoformat(),
        }

    logger.info(
        "engagement.query",
        extra={"data_source": data_source, "total": len(records), "returned": len(filtered)},
    )

    return {
        "data": [r.to_wire() for r in filtered],
        "analytics": analytics.to_wire(),
        "metadata": {
            "total": len(records),
            "returned": len(filtered),
            "filtered": criteria.is_filtered,
            "dataSource": data_source,
            "dateRange": date_range,
            "generatedAt": now.isoformat(),
        },
    }
