"""Export API: filtered engagement records as a CSV download."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from engagement_dashboard.api.deps import get_engagement_store, get_settings
from engagement_dashboard.core.config import Settings
from engagement_dashboard.features.engagement.export import export_service
from engagement_dashboard.features.engagement.filters import apply_filters, criteria_from_params
from engagement_dashboard.features.engagement.service import working_set
from engagement_dashboard.features.engagement.store import EngagementStore

router = APIRouter(prefix="/api/export", tags=["export"])

# Exports default to the whole working set rather than the dashboard page size
EXPORT_DEFAULT_LIMIT = 10_000


@router.get("/csv")
def export_csv(
    type: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    store: EngagementStore = Depends(get_engagement_store),
    cfg: Settings = Depends(get_settings),
):
    """Stream the filtered working set as text/csv."""
    criteria = criteria_from_params(
        type=type,
        start_date=startDate,
        end_date=endDate,
        limit=limit,
        default_limit=EXPORT_DEFAULT_LIMIT,
    )
    records, _ = working_set(store, batch_size=cfg.MOCK_BATCH_SIZE)
    filtered = apply_filters(records, criteria)

    return StreamingResponse(
        export_service.iter_csv(filtered),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_service.filename()}"'},
    )
