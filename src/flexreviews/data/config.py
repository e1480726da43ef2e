"""
FlexReviews Configuration Module
================================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    HOSTAWAY_ACCOUNT_ID: Hostaway account id (OAuth client id)
    HOSTAWAY_API_KEY: Hostaway API key (OAuth client secret)
    HOSTAWAY_BASE_URL: API base URL (default: https://api.hostaway.com/v1)
    HOSTAWAY_REQUEST_TIMEOUT: Request timeout in seconds (default: 10)
    HOSTAWAY_TOKEN_MARGIN_SECONDS: Refresh token this long before expiry (default: 60)
    HOSTAWAY_CATEGORY_SCALE: Divisor bringing category ratings to 0-5 (default: 2.0)
    HOSTAWAY_MOCK_FALLBACK: Serve the bundled mock dataset on API failure (default: true)

    GOOGLE_PLACES_API_KEY: Google Places API key (optional source)
    GOOGLE_PLACES_BASE_URL: API base URL (default: https://maps.googleapis.com/maps/api/place)
    GOOGLE_PLACES_REQUEST_TIMEOUT: Request timeout in seconds (default: 10)

    FLEXREVIEWS_DATA_DIR: Directory for the approval state file (default: ./data under the working directory)
    FLEXREVIEWS_APPROVALS_FILE: Approval state file name (default: approved-reviews.json)

    SOURCE_TIMEOUT_SECONDS: Upper bound for one source fetch (default: 15)
    TREND_WINDOW_DAYS: Trailing window for trend data (default: 30)

    ENVIRONMENT: Deployment name reported by the health check (default: development)

    LOG_LEVEL, LOG_FORMAT, LOG_FILE, LOG_JSON: Logging (see logging_config)
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from a .env file in the working directory, if present
load_dotenv(Path.cwd() / ".env")


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.getenv(key, default)


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class HostawayConfig:
    """Hostaway property-management API configuration."""

    account_id: Optional[str] = field(default_factory=lambda: get_env("HOSTAWAY_ACCOUNT_ID"))
    api_key: Optional[str] = field(default_factory=lambda: get_env("HOSTAWAY_API_KEY"))
    base_url: str = field(default_factory=lambda: get_env("HOSTAWAY_BASE_URL", "https://api.hostaway.com/v1"))

    request_timeout: float = field(default_factory=lambda: get_env_float("HOSTAWAY_REQUEST_TIMEOUT", 10.0))

    # Cached tokens are refreshed this many seconds before they really expire
    token_margin_seconds: int = field(default_factory=lambda: get_env_int("HOSTAWAY_TOKEN_MARGIN_SECONDS", 60))

    # Hostaway category ratings are on a 0-10 scale
    category_scale: float = field(default_factory=lambda: get_env_float("HOSTAWAY_CATEGORY_SCALE", 2.0))

    # Serve the bundled mock dataset when the API is unreachable or empty
    mock_fallback: bool = field(default_factory=lambda: get_env_bool("HOSTAWAY_MOCK_FALLBACK", True))

    @property
    def is_configured(self) -> bool:
        return bool(self.account_id and self.api_key)

    @property
    def token_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/accessTokens"

    def __post_init__(self):
        """Validate configuration."""
        if self.category_scale <= 0:
            raise ValueError("HOSTAWAY_CATEGORY_SCALE must be positive")
        if self.request_timeout <= 0:
            raise ValueError("HOSTAWAY_REQUEST_TIMEOUT must be positive")
        if self.token_margin_seconds < 0:
            raise ValueError("HOSTAWAY_TOKEN_MARGIN_SECONDS cannot be negative")


@dataclass
class GooglePlacesConfig:
    """Google Places API configuration."""

    api_key: Optional[str] = field(default_factory=lambda: get_env("GOOGLE_PLACES_API_KEY"))
    base_url: str = field(default_factory=lambda: get_env(
        "GOOGLE_PLACES_BASE_URL",
        "https://maps.googleapis.com/maps/api/place",
    ))
    request_timeout: float = field(default_factory=lambda: get_env_float("GOOGLE_PLACES_REQUEST_TIMEOUT", 10.0))

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class StorageConfig:
    """Approval-state storage configuration."""

    data_dir: Path = field(default_factory=lambda: Path(
        get_env("FLEXREVIEWS_DATA_DIR", str(Path.cwd() / "data"))
    ))
    approvals_file: str = field(default_factory=lambda: get_env(
        "FLEXREVIEWS_APPROVALS_FILE", "approved-reviews.json"
    ))

    @property
    def approvals_path(self) -> Path:
        return self.data_dir / self.approvals_file


@dataclass
class AggregationConfig:
    """Aggregation and analytics configuration."""

    source_timeout_seconds: float = field(default_factory=lambda: get_env_float("SOURCE_TIMEOUT_SECONDS", 15.0))
    trend_window_days: int = field(default_factory=lambda: get_env_int("TREND_WINDOW_DAYS", 30))

    def __post_init__(self):
        """Validate configuration."""
        if self.source_timeout_seconds <= 0:
            raise ValueError("source_timeout_seconds must be positive")
        if self.trend_window_days <= 0:
            raise ValueError("trend_window_days must be positive")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    format: str = field(default_factory=lambda: get_env(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    hostaway: HostawayConfig = field(default_factory=HostawayConfig)
    google: GooglePlacesConfig = field(default_factory=GooglePlacesConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Raises:
        ValueError: If configuration is invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None

