import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"  # comma-separated

    # Request client
    API_BASE_URL: str = "http://localhost:8000"
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    CLIENT_VERSION: str = "1.0.0"

    # Working set
    MOCK_BATCH_SIZE: int = 50
    DEFAULT_RESULT_LIMIT: int = 10
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("engagement_dashboard")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    if getattr(cfg, "MOCK_BATCH_SIZE", 0) <= 0:
        problems.append("MOCK_BATCH_SIZE must be positive")
    if getattr(cfg, "DEFAULT_RESULT_LIMIT", 0) <= 0:
        problems.append("DEFAULT_RESULT_LIMIT must be positive")
    if getattr(cfg, "REQUEST_TIMEOUT_SECONDS", 0) <= 0:
        problems.append("REQUEST_TIMEOUT_SECONDS must be positive")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
