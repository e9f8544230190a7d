"""
engagement_dashboard/features/dashboard/controller.py

Async dashboard controller: drives the reducer from API outcomes.

- only the most recent load may update state; older responses are dropped
- uploads are refused while one is in flight
- notifications with a duration are dismissed by a loop timer
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from engagement_dashboard.features.dashboard.state import (
    Action,
    DashboardState,
    DashboardStatus,
    ErrorCleared,
    ErrorState,
    FiltersApplied,
    LoadCancelled,
    LoadFailed,
    LoadRequested,
    LoadSucceeded,
    Notification,
    NotificationAdded,
    NotificationRemoved,
    StateReset,
    UploadFailed,
    UploadStarted,
    UploadSucceeded,
    dashboard_reducer,
)
from engagement_dashboard.models.engagement import AnalyticsSummary, EngagementRecord
from engagement_dashboard.services.api_client import APIService, APIServiceError, ErrorKind

logger = logging.getLogger(__name__)

SUCCESS_NOTIFICATION_MS = 3000
ERROR_NOTIFICATION_MS = 5000

Listener = Callable[[DashboardState], None]


def _error_state(error: Optional[APIServiceError]) -> ErrorState:
    now = datetime.now(timezone.utc)
    if error is None:
        return ErrorState(message="An unknown error occurred", code="UNKNOWN_ERROR", timestamp=now)
    return ErrorState(message=error.message, code=error.code, status=error.status, timestamp=now)


class DashboardController:
    """Owns one DashboardState and the APIService used to fill it."""

    def __init__(self, api: APIService, initial: Optional[DashboardState] = None):
        self.api = api
        self._state = initial or DashboardState()
        self._listeners: List[Listener] = []
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._load_ticket = 0

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def can_upload(self) -> bool:
        return not self._state.uploading

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> DashboardState:
        previous = self._state
        self._state = dashboard_reducer(previous, action)
        if self._state.status != previous.status:
            logger.debug(
                "dashboard.transition",
                extra={
                    "action": type(action).__name__,
                    "from": previous.status.value,
                    "to": self._state.status.value,
                },
            )
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    # Loading

    async def load_engagements(self, filters: Optional[Mapping[str, Any]] = None) -> bool:
        """Fetch with the given filters (current filters when None)."""
        self.dispatch(LoadRequested())
        return await self._fetch(dict(filters) if filters is not None else dict(self._state.filters))

    async def apply_filters(self, filters: Mapping[str, Any]) -> bool:
        """Merge filters into state and reload."""
        self.dispatch(FiltersApplied(filters=dict(filters)))
        return await self._fetch(dict(self._state.filters))

    async def refresh(self) -> bool:
        return await self.load_engagements(self._state.filters)

    async def _fetch(self, filters: Dict[str, Any]) -> bool:
        self._load_ticket += 1
        ticket = self._load_ticket

        outcome = await self.api.get_engagements(filters)

        if ticket != self._load_ticket or not self.api.is_current(outcome):
            logger.info(
                "dashboard.stale_response_dropped",
                extra={"request_id": str(outcome.request_id)},
            )
            return False

        if not outcome.ok:
            self._fail_load(outcome.error)
            return False

        try:
            payload = outcome.payload or {}
            engagements = [EngagementRecord.model_validate(item) for item in payload.get("data", [])]
            analytics = AnalyticsSummary.model_validate(payload.get("analytics") or {})
        except (PydanticValidationError, AttributeError, TypeError) as exc:
            self._fail_load(APIServiceError(
                f"Unexpected engagement payload: {exc}",
                "PARSE_ERROR",
                status=outcome.status,
                kind=ErrorKind.PARSE,
            ))
            return False

        self.dispatch(LoadSucceeded(
            engagements=engagements,
            analytics=analytics,
            metadata=payload.get("metadata"),
        ))
        return True

    def _fail_load(self, error: Optional[APIServiceError]) -> None:
        state = _error_state(error)
        self.dispatch(LoadFailed(error=state))
        self.add_notification("error", "Failed to load engagements", state.message, ERROR_NOTIFICATION_MS)

    async def cancel_pending(self) -> None:
        """Abandon in-flight requests; state falls back out of LOADING."""
        self._load_ticket += 1
        await self.api.cancel_all()
        self.dispatch(LoadCancelled())

    def clear_error(self) -> None:
        self.dispatch(ErrorCleared())

    # Upload

    async def upload_csv(self, filename: str, content: bytes) -> bool:
        """
        Upload a CSV and reload with the current filters on success.

        Returns False without contacting the server when an upload is
        already running.
        """
        if not self.can_upload:
            logger.warning("dashboard.upload_rejected", extra={"reason": "upload_in_progress"})
            return False

        self.dispatch(UploadStarted())
        outcome = await self.api.upload_csv(filename, content)

        if not self.api.is_current(outcome):
            self.dispatch(UploadSucceeded())
            return False

        if not outcome.ok:
            state = _error_state(outcome.error)
            self.dispatch(UploadFailed(error=state))
            self.add_notification("error", "Failed to upload CSV", state.message, ERROR_NOTIFICATION_MS)
            return False

        processed = (outcome.payload or {}).get("processed", 0)
        self.dispatch(UploadSucceeded())
        self.add_notification(
            "success",
            "CSV uploaded successfully",
            f"Processed {processed} records",
            SUCCESS_NOTIFICATION_MS,
        )
        await self.load_engagements(self._state.filters)
        return True

    # Notifications

    def add_notification(
        self,
        type: str,
        title: str,
        message: str,
        duration_ms: Optional[int] = None,
    ) -> str:
        """
        Append a notification; schedules removal when duration_ms is set.

        Auto-dismissal needs a running event loop. Called outside one, the
        notification stays until remove_notification() or reset().
        """
        notification = Notification(
            id=uuid.uuid4().hex,
            type=type,
            title=title,
            message=message,
            timestamp=datetime.now(timezone.utc),
            duration_ms=duration_ms,
        )
        self.dispatch(NotificationAdded(notification=notification))

        if duration_ms:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning(
                    "dashboard.notification_timer_skipped",
                    extra={"notification_id": notification.id, "reason": "no_running_loop"},
                )
                return notification.id
            self._timers[notification.id] = loop.call_later(
                duration_ms / 1000.0, self.remove_notification, notification.id
            )
        return notification.id

    def remove_notification(self, notification_id: str) -> None:
        handle = self._timers.pop(notification_id, None)
        if handle is not None:
            handle.cancel()
        self.dispatch(NotificationRemoved(notification_id=notification_id))

    def _cancel_timers(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    # Lifecycle

    def reset(self) -> None:
        self._load_ticket += 1
        self._cancel_timers()
        self.dispatch(StateReset())

    async def close(self) -> None:
        self._cancel_timers()
        self._listeners.clear()
        await self.api.aclose()


__all__ = [
    "DashboardController",
    "DashboardStatus",
    "ERROR_NOTIFICATION_MS",
    "SUCCESS_NOTIFICATION_MS",
]
