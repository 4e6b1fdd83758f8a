"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("showsync.config")

LOG_FORMAT = "%(asctime)s %(name)-20s %(levelname)-7s %(message)s"


class Settings(BaseSettings):
    # Google OAuth client (used to refresh user tokens)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_token_uri: str = "https://oauth2.googleapis.com/token"

    # Google Calendar
    google_calendar_id: str = "primary"
    calendar_timezone: str = "America/Sao_Paulo"
    event_color_id: str = "9"  # blue, reserved for shows

    # Event text
    currency_symbol: str = "R$"

    # Conflict detection
    conflict_window_days: int = 30
    conflict_max_results: int = 100

    # Health
    health_recent_sync_days: int = 7
    health_min_sync_percentage: int = 80

    # Batches
    sync_max_workers: int = 4

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if self.sync_max_workers < 1:
            raise ValueError("SYNC_MAX_WORKERS must be at least 1.")
        if self.conflict_window_days < 1:
            raise ValueError("CONFLICT_WINDOW_DAYS must be at least 1.")
        if self.conflict_max_results < 1:
            raise ValueError("CONFLICT_MAX_RESULTS must be at least 1.")
        if not 0 <= self.health_min_sync_percentage <= 100:
            raise ValueError("HEALTH_MIN_SYNC_PERCENTAGE must be between 0 and 100.")

        if not self.google_client_id or not self.google_client_secret:
            warnings.append(
                "GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set. "
                "Expired calendar tokens cannot be refreshed."
            )

        if self.debug:
            warnings.append("DEBUG=true. Provider payloads are logged verbosely.")

        return warnings


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger so every ``showsync.*`` logger is visible."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )


settings = Settings()
