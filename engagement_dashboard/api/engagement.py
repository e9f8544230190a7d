"""
engagement_dashboard/api/engagement.py

Engagement endpoints: filtered query, CSV upload, clearing the upload.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from engagement_dashboard.api.deps import get_engagement_store, get_settings
from engagement_dashboard.core.config import Settings
from engagement_dashboard.core.errors import PayloadTooLargeError, ValidationError
from engagement_dashboard.core.logging import log_event
from engagement_dashboard.features.engagement.csv_import import parse_csv
from engagement_dashboard.features.engagement.filters import criteria_from_params
from engagement_dashboard.features.engagement.service import (
    DATA_SOURCE_GENERATED,
    query_engagements,
)
from engagement_dashboard.features.engagement.store import EngagementStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/engagement", tags=["engagement"])


@router.get("", response_model=Dict[str, Any])
def get_engagements(
    type: Optional[str] = Query(None, description="click | view | share | comment | like | download"),
    source: Optional[str] = Query(None, description="web | mobile | email | social | direct"),
    startDate: Optional[str] = Query(None, description="YYYY-MM-DD or ISO-8601; needs endDate"),
    endDate: Optional[str] = Query(None, description="YYYY-MM-DD or ISO-8601; needs startDate"),
    limit: Optional[str] = Query(None, description="Max records returned (default 10)"),
    minScore: Optional[str] = Query(None, description="Inclusive lower score bound"),
    maxScore: Optional[str] = Query(None, description="Inclusive upper score bound"),
    store: EngagementStore = Depends(get_engagement_store),
    cfg: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Filtered engagement records with analytics over the filtered set.

    Score bounds, limit and dates that do not parse are ignored.
    Unknown type/source values are rejected with 400.
    """
    criteria = criteria_from_params(
        type=type,
        source=source,
        start_date=startDate,
        end_date=endDate,
        limit=limit,
        min_score=minScore,
        max_score=maxScore,
        default_limit=cfg.DEFAULT_RESULT_LIMIT,
    )
    return query_engagements(store, criteria, batch_size=cfg.MOCK_BATCH_SIZE)


@router.post("/upload", response_model=Dict[str, Any])
async def upload_engagements(
    csvFile: Optional[UploadFile] = File(None),
    store: EngagementStore = Depends(get_engagement_store),
    cfg: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Replace the working set with records cleaned from an uploaded CSV.

    Rows are never dropped for bad values; substitutions are listed in `errors`.
    """
    if csvFile is None:
        raise ValidationError("No file uploaded. Send the CSV in the 'csvFile' field.")

    content = await csvFile.read(cfg.MAX_UPLOAD_BYTES + 1)
    if len(content) > cfg.MAX_UPLOAD_BYTES:
        raise PayloadTooLargeError(f"CSV file exceeds {cfg.MAX_UPLOAD_BYTES} bytes")

    result = parse_csv(content)
    store.replace(result.records)

    log_event(
        "info",
        "engagement.upload",
        request_id=None,
        event_type="upload",
        extra={"upload_name": csvFile.filename, "processed": result.processed, "substitutions": len(result.errors)},
    )

    return {
        "message": "CSV processed successfully",
        "processed": result.processed,
        "sample": [r.to_wire() for r in result.sample],
        "errors": [e.model_dump() for e in result.errors],
    }


@router.post("/clear-uploaded", response_model=Dict[str, Any])
def clear_uploaded(store: EngagementStore = Depends(get_engagement_store)) -> Dict[str, Any]:
    """Drop uploaded records; subsequent queries use generated data."""
    had_upload = store.has_uploaded
    store.clear()
    log_event("info", "engagement.clear_uploaded", request_id=None, extra={"had_upload": had_upload})
    return {
        "message": "Uploaded data cleared" if had_upload else "No uploaded data to clear",
        "dataSource": DATA_SOURCE_GENERATED,
    }
