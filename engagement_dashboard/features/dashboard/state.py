"""
engagement_dashboard/features/dashboard/state.py

Dashboard state and its pure reducer.
dashboard_reducer(state, action) -> new state; the input state is never mutated.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from engagement_dashboard.models.engagement import AnalyticsSummary, EngagementRecord

DEFAULT_FILTERS: Dict[str, Any] = {"limit": 10}


class DashboardStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class ErrorState(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    code: str
    status: Optional[int] = None
    timestamp: datetime


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["success", "error", "warning", "info"]
    title: str
    message: str
    timestamp: datetime
    duration_ms: Optional[int] = Field(default=None, description="Auto-dismiss after this many ms")


class DashboardState(BaseModel):
    """Exactly one status holds at a time; data survives errors."""

    model_config = ConfigDict(frozen=True)

    status: DashboardStatus = DashboardStatus.IDLE
    loading_message: Optional[str] = None
    engagements: List[EngagementRecord] = Field(default_factory=list)
    analytics: Optional[AnalyticsSummary] = None
    metadata: Optional[Dict[str, Any]] = None
    filters: Dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_FILTERS))
    error: Optional[ErrorState] = None
    notifications: List[Notification] = Field(default_factory=list)
    last_updated: Optional[datetime] = None
    uploading: bool = False

    @property
    def is_loading(self) -> bool:
        return self.status == DashboardStatus.LOADING


# Actions

class Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class LoadRequested(Action):
    message: str = "Loading engagements..."


class FiltersApplied(Action):
    filters: Dict[str, Any]


class LoadSucceeded(Action):
    engagements: List[EngagementRecord]
    analytics: AnalyticsSummary
    metadata: Optional[Dict[str, Any]] = None
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LoadFailed(Action):
    error: ErrorState


class LoadCancelled(Action):
    pass


class ErrorCleared(Action):
    pass


class UploadStarted(Action):
    message: str = "Uploading CSV..."


class UploadSucceeded(Action):
    pass


class UploadFailed(Action):
    error: ErrorState


class NotificationAdded(Action):
    notification: Notification


class NotificationRemoved(Action):
    notification_id: str


class StateReset(Action):
    pass


def dashboard_reducer(state: DashboardState, action: Action) -> DashboardState:
    """
    Apply one action.

    Transitions:
        IDLE|LOADED|ERRORED --LoadRequested--> LOADING
        any                 --FiltersApplied--> LOADING
        LOADING             --LoadSucceeded--> LOADED
        LOADING             --LoadFailed--> ERRORED
        ERRORED             --ErrorCleared--> IDLE

    Results that arrive outside LOADING are ignored.
    """
    if isinstance(action, LoadRequested):
        return state.model_copy(update={
            "status": DashboardStatus.LOADING,
            "loading_message": action.message,
        })

    if isinstance(action, FiltersApplied):
        return state.model_copy(update={
            "status": DashboardStatus.LOADING,
            "loading_message": "Applying filters...",
            "filters": {**state.filters, **action.filters},
        })

    if isinstance(action, LoadSucceeded):
        if state.status != DashboardStatus.LOADING:
            return state
        return state.model_copy(update={
            "status": DashboardStatus.LOADED,
            "loading_message": None,
            "engagements": list(action.engagements),
            "analytics": action.analytics,
            "metadata": action.metadata,
            "error": None,
            "last_updated": action.at,
        })

    if isinstance(action, LoadFailed):
        if state.status != DashboardStatus.LOADING:
            return state
        return state.model_copy(update={
            "status": DashboardStatus.ERRORED,
            "loading_message": None,
            "error": action.error,
        })

    if isinstance(action, LoadCancelled):
        if state.status != DashboardStatus.LOADING:
            return state
        fallback = DashboardStatus.LOADED if state.analytics is not None else DashboardStatus.IDLE
        return state.model_copy(update={"status": fallback, "loading_message": None, "uploading": False})

    if isinstance(action, ErrorCleared):
        if state.status != DashboardStatus.ERRORED:
            return state
        return state.model_copy(update={"status": DashboardStatus.IDLE, "error": None})

    if isinstance(action, UploadStarted):
        return state.model_copy(update={
            "status": DashboardStatus.LOADING,
            "loading_message": action.message,
            "uploading": True,
        })

    if isinstance(action, UploadSucceeded):
        return state.model_copy(update={"uploading": False})

    if isinstance(action, UploadFailed):
        # engagement list is left as it was
        return state.model_copy(update={
            "status": DashboardStatus.ERRORED,
            "loading_message": None,
            "error": action.error,
            "uploading": False,
        })

    if isinstance(action, NotificationAdded):
        return state.model_copy(update={"notifications": [*state.notifications, action.notification]})

    if isinstance(action, NotificationRemoved):
        return state.model_copy(update={
            "notifications": [n for n in state.notifications if n.id != action.notification_id],
        })

    if isinstance(action, StateReset):
        return DashboardState()

    return state
