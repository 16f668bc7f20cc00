"""Runtime settings for the tracking context.

Values come from environment variables prefixed with ``TRACKING_``
(e.g. ``TRACKING_LOCATION_WRITE_INTERVAL_S=2.5``).
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class TrackingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TRACKING_", extra="ignore")

    # Location streaming
    min_location_accuracy_m: float = 50.0
    location_write_interval_s: float = 3.0
    location_backoff_initial_s: float = 1.0
    location_backoff_max_s: float = 30.0
    location_start_timeout_s: float | None = None

    # External capabilities
    route_timeout_s: float = 6.0
    geocode_timeout_s: float = 8.0
    route_displacement_threshold_m: float = 100.0

    # Push / poll reconciliation
    push_grace_period_s: float = 15.0
    poll_interval_s: float = 5.0

    # Notifications
    notification_ttl_days: int = 7
    notification_language: str = "en"
    operations_recipient_id: str = "operations"


@lru_cache
def get_settings() -> TrackingSettings:
    """Return the process-wide settings (cached)."""
    return TrackingSettings()
