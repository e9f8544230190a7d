"""Request-scoped dependencies shared by the routers."""

from fastapi import Request

from engagement_dashboard.core.config import Settings, settings
from engagement_dashboard.features.engagement.store import EngagementStore


def get_engagement_store(request: Request) -> EngagementStore:
    """The store owned by the running app (created in create_app)."""
    return request.app.state.engagement_store


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or settings
