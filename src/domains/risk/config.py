"""Risk evaluation configuration with sensible defaults."""

import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo


@dataclass
class FactorWeights:
    unusual_amount: int = 20
    unusual_time: int = 15
    unusual_location: int = 25
    unusual_device: int = 20
    multiple_bookings: int = 15
    recent_failures: int = 25
    known_bad_actor: int = 50


@dataclass
class AmountSettings:
    # Tour prices are whole yen; a fractional amount counts as unusual
    flag_fractional: bool = True


@dataclass
class LevelThresholds:
    medium: int = 30
    high: int = 60
    critical: int = 90


@dataclass
class VelocitySettings:
    booking_window_seconds: int = 3600
    booking_count_min: int = 3
    failure_window_seconds: int = 86_400
    failure_count_min: int = 3


@dataclass
class TimeSettings:
    timezone: str = "Asia/Tokyo"
    # Half-open interval [start, end) of local hours considered unusual
    unusual_hour_start: int = 1
    unusual_hour_end: int = 5


@dataclass
class RetentionSettings:
    history_max_entries: int = 200
    history_max_age_seconds: int = 7 * 86_400
    failure_max_entries: int = 50
    review_cleanup_days: int = 30


@dataclass
class RiskConfig:
    weights: FactorWeights = field(default_factory=FactorWeights)
    levels: LevelThresholds = field(default_factory=LevelThresholds)
    amount: AmountSettings = field(default_factory=AmountSettings)
    velocity: VelocitySettings = field(default_factory=VelocitySettings)
    time: TimeSettings = field(default_factory=TimeSettings)
    retention: RetentionSettings = field(default_factory=RetentionSettings)

    @classmethod
    def from_env(cls) -> "RiskConfig":
        """Load config with env var overrides. Env vars use RISK_ prefix."""
        config = cls()

        # Level overrides
        if v := os.getenv("RISK_HIGH_THRESHOLD"):
            config.levels.high = int(v)
        if v := os.getenv("RISK_CRITICAL_THRESHOLD"):
            config.levels.critical = int(v)

        # Amount overrides
        if v := os.getenv("RISK_FLAG_FRACTIONAL_AMOUNTS"):
            config.amount.flag_fractional = v.strip().lower() in ("1", "true", "yes")

        # Velocity overrides
        if v := os.getenv("RISK_BOOKING_COUNT_MIN"):
            config.velocity.booking_count_min = int(v)
        if v := os.getenv("RISK_FAILURE_COUNT_MIN"):
            config.velocity.failure_count_min = int(v)

        # Time overrides
        if v := os.getenv("RISK_TIMEZONE"):
            config.time.timezone = v

        # Retention overrides
        if v := os.getenv("RISK_HISTORY_MAX_ENTRIES"):
            config.retention.history_max_entries = int(v)
        if v := os.getenv("RISK_REVIEW_CLEANUP_DAYS"):
            config.retention.review_cleanup_days = int(v)

        return config


# Module-level default instance
default_config = RiskConfig()


def business_timezone() -> ZoneInfo:
    """Zone that naive timestamps are read in (``RISK_TIMEZONE``, default Tokyo)."""
    return ZoneInfo(os.getenv("RISK_TIMEZONE") or TimeSettings.timezone)
