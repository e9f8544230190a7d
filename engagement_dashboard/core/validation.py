"""
Environment validation utilities.

Ensures the service fails fast on misconfiguration while
remaining bypassable for tests via SKIP_ENV_VALIDATION.
"""

import os
from typing import Optional
from urllib.parse import urlparse

from engagement_dashboard.core.config import settings


class EnvValidationError(RuntimeError):
    """Raised when environment validation fails."""


def _is_valid_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_env(env: Optional[str] = None, settings_obj=None) -> bool:
    """Validate environment configuration.

    Args:
        env: Override environment name (defaults to settings.ENV)
        settings_obj: Override settings object (defaults to engagement_dashboard.core.config.settings)

    Returns:
        True if validation passes.

    Raises:
        EnvValidationError when a rule is violated.
    """
    if os.getenv("SKIP_ENV_VALIDATION") == "1":
        return True

    cfg = settings_obj or settings
    mode = (env or getattr(cfg, "ENV", "development") or "development").lower()

    base_url = getattr(cfg, "API_BASE_URL", None)
    if not base_url or not _is_valid_http_url(base_url):
        raise EnvValidationError("API_BASE_URL must be an http(s) URL (e.g. http://localhost:8000)")

    if getattr(cfg, "MAX_UPLOAD_BYTES", 0) <= 0:
        raise EnvValidationError("MAX_UPLOAD_BYTES must be positive")

    if mode == "production":
        origins = [o.strip() for o in (getattr(cfg, "CORS_ORIGINS", "") or "").split(",") if o.strip()]
        if "*" in origins:
            raise EnvValidationError("CORS_ORIGINS must not contain '*' in production")
        if not base_url.startswith("https://"):
            raise EnvValidationError("API_BASE_URL must use https in production")

    return True
