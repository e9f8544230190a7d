"""
engagement_dashboard/api/analytics.py

Analytics endpoints: static summary and user-segment metrics.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from engagement_dashboard.api.deps import get_engagement_store, get_settings
from engagement_dashboard.core.config import Settings
from engagement_dashboard.core.errors import ValidationError
from engagement_dashboard.features.analytics.reducers import (
    SEGMENTS,
    reduce_segment,
    reduce_segment_comparison,
)
from engagement_dashboard.features.engagement.service import working_set
from engagement_dashboard.features.engagement.store import EngagementStore

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

STATIC_SUMMARY = {
    "totalEngagements": 15420,
    "weeklyGrowth": 12.5,
    "topCategories": ["click", "view", "share"],
    "averageSessionTime": "4m 32s",
    "conversionRate": 3.2,
}


@router.get("/summary", response_model=Dict[str, Any])
def get_summary() -> Dict[str, Any]:
    """Headline dashboard numbers. Synthetic and constant."""
    return {**STATIC_SUMMARY, "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/segments", response_model=Dict[str, Any])
def get_segments(
    segment: Optional[str] = Query(None, description="all | premium | standard | new"),
    compareSegments: Optional[str] = Query(None, description="Comma-separated segments to compare"),
    store: EngagementStore = Depends(get_engagement_store),
    cfg: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Segment metrics over the current working set.

    - segment only: {"segment", "data"}
    - compareSegments: {"segments", "data": {name: metrics}, "aggregate"}
    """
    records, data_source = working_set(store, batch_size=cfg.MOCK_BATCH_SIZE)

    if compareSegments:
        names = [s.strip().lower() for s in compareSegments.split(",") if s.strip()]
        _check_segments(names)
        payload = reduce_segment_comparison(names, records)
        payload["dataSource"] = data_source
        return payload

    name = (segment or "all").strip().lower()
    _check_segments([name])
    return {
        "segment": name,
        "data": reduce_segment(name, records).model_dump(),
        "dataSource": data_source,
    }


def _check_segments(names) -> None:
    if not names:
        raise ValidationError("compareSegments must name at least one segment")
    unknown = [n for n in names if n not in SEGMENTS]
    if unknown:
        raise ValidationError(f"Invalid segment '{unknown[0]}'. Must be one of: {', '.join(SEGMENTS)}")
