"""
Configuration management for the logbook.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic numbers scattered
throughout the scoring and tracking code.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = '0') -> bool:
    """Parse a '0'/'1' style environment flag."""
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///logbook.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class TrackingConfig:
    """Live tracking and scoring thresholds."""
    approach_buffer_size: int = int(os.getenv('APPROACH_BUFFER_SIZE', '30'))
    waypoint_cluster_seconds: float = float(os.getenv('WAYPOINT_CLUSTER_SECONDS', '90'))

    # Samples at or below this speed are ground idle and excluded from averages
    min_average_speed_kts: float = float(os.getenv('MIN_AVERAGE_SPEED_KTS', '10'))

    # Telemetry fallback for landing rate only looks below this altitude
    telemetry_landing_ceiling_ft: float = float(os.getenv('TELEMETRY_LANDING_CEILING_FT', '100'))

    # Live view averages only count samples above this altitude
    live_min_altitude_ft: float = 100.0

    # Automatic touchdown: on the ground below this speed after being airborne
    touchdown_speed_kts: float = float(os.getenv('TOUCHDOWN_SPEED_KTS', '100'))

    # At-gate: below this speed on the ground for stationary_seconds
    stationary_speed_kts: float = float(os.getenv('STATIONARY_SPEED_KTS', '3'))
    stationary_seconds: float = float(os.getenv('STATIONARY_SECONDS', '60'))

    # Position units per nautical mile
    units_per_nm: float = 1852.0


@dataclass(frozen=True)
class StatsConfig:
    """Stats cache and profile settings."""
    recent_flights_limit: int = int(os.getenv('RECENT_FLIGHTS_LIMIT', '10'))
    activity_window_days: int = int(os.getenv('ACTIVITY_WINDOW_DAYS', '365'))
    worker_enabled: bool = _env_flag('STATS_WORKER_ENABLED', '1')


@dataclass(frozen=True)
class CacheConfig:
    """In-memory live view cache settings."""
    ttl_seconds: int = int(os.getenv('LIVE_VIEW_TTL_SECONDS', '5'))
    max_entries: int = 500


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig
    tracking: TrackingConfig
    stats: StatsConfig
    cache: CacheConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        database=DatabaseConfig(),
        tracking=TrackingConfig(),
        stats=StatsConfig(),
        cache=CacheConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=_env_flag('FLASK_DEBUG'),
    )


# Singleton instance
config = load_config()
