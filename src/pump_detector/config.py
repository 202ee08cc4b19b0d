"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
Pump Detector application, loading and validating environment variables
at startup.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from pump_detector.detector.pump import DetectorConfig

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"

DEFAULT_SYMBOLS: tuple[str, ...] = (
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "XRPUSDT", "ADAUSDT",
    "SOLUSDT", "DOTUSDT", "DOGEUSDT", "AVAXUSDT", "SHIBUSDT",
    "MATICUSDT", "LTCUSDT", "ATOMUSDT", "LINKUSDT", "UNIUSDT",
    "ETCUSDT", "XLMUSDT", "NEARUSDT", "ALGOUSDT", "VETUSDT",
    "FTMUSDT", "MANAUSDT", "SANDUSDT", "AXSUSDT", "CHZUSDT",
    "ENJUSDT", "GALAUSDT", "HBARUSDT", "ICPUSDT", "FILUSDT",
)  # fmt: skip


class BinanceSettings(BaseSettings):
    """Binance REST API settings."""

    model_config = SettingsConfigDict(env_prefix="BINANCE_", extra="ignore")

    rest_url: str = Field(
        default="https://api.binance.com",
        alias="BINANCE_REST_URL",
        description="Binance spot REST endpoint",
    )
    timeout_seconds: float = Field(
        default=10.0,
        alias="BINANCE_TIMEOUT_SECONDS",
        gt=0.0,
        le=120.0,
        description="Per-request timeout for price and 24h stat fetches",
    )
    user_agent: str = Field(
        default="PumpDetector/1.0",
        alias="BINANCE_USER_AGENT",
        description="User-Agent header sent to Binance",
    )

    @field_validator("rest_url")
    @classmethod
    def validate_rest_url(cls, v: str) -> str:
        """Validate REST URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("BINANCE_REST_URL must be an HTTP(S) endpoint")
        return v.rstrip("/")


class DetectionSettings(BaseSettings):
    """Pump detector thresholds and history window bounds."""

    model_config = SettingsConfigDict(env_prefix="DETECTION_", extra="ignore")

    capital: float = Field(
        default=50_000.0,
        alias="DETECTION_CAPITAL",
        gt=0.0,
        description="Capital base used to estimate potential profit",
    )
    min_profit_margin_pct: float = Field(
        default=2.0,
        alias="DETECTION_MIN_PROFIT_MARGIN_PCT",
        gt=0.0,
        lt=100.0,
        description="Minimum profit margin T (%); criteria use T, T/2 and 2T",
    )
    window_minutes: float = Field(
        default=10.0,
        alias="DETECTION_WINDOW_MINUTES",
        gt=0.0,
        le=24 * 60,
        description="Price history window per symbol (minutes)",
    )
    max_points: int = Field(
        default=1000,
        alias="DETECTION_MAX_POINTS",
        ge=2,
        le=1_000_000,
        description="Maximum samples retained per symbol",
    )
    debounce_seconds: float = Field(
        default=30.0,
        alias="DETECTION_DEBOUNCE_SECONDS",
        gt=0.0,
        le=24 * 3600,
        description="Minimum seconds between two pumps on the same symbol",
    )
    high_confidence_pct: float = Field(
        default=5.0,
        alias="DETECTION_HIGH_CONFIDENCE_PCT",
        ge=0.0,
        description="Profit margin (%) above which confidence is HIGH",
    )
    medium_confidence_pct: float = Field(
        default=2.0,
        alias="DETECTION_MEDIUM_CONFIDENCE_PCT",
        ge=0.0,
        description="Profit margin (%) above which confidence is MEDIUM",
    )

    @model_validator(mode="after")
    def validate_confidence_thresholds(self) -> DetectionSettings:
        if self.medium_confidence_pct > self.high_confidence_pct:
            raise ValueError(
                "DETECTION_MEDIUM_CONFIDENCE_PCT must not exceed DETECTION_HIGH_CONFIDENCE_PCT"
            )
        return self

    @property
    def window_duration(self) -> timedelta:
        return timedelta(minutes=self.window_minutes)

    def to_detector_config(self) -> DetectorConfig:
        return DetectorConfig(
            capital=self.capital,
            min_profit_margin_pct=self.min_profit_margin_pct,
            debounce_window=timedelta(seconds=self.debounce_seconds),
            high_confidence_pct=self.high_confidence_pct,
            medium_confidence_pct=self.medium_confidence_pct,
        )


class MonitorSettings(BaseSettings):
    """Scan loop and alert retention settings."""

    model_config = SettingsConfigDict(env_prefix="MONITOR_", extra="ignore")

    interval_seconds: float = Field(
        default=5.0,
        alias="MONITOR_INTERVAL_SECONDS",
        gt=0.0,
        le=3600.0,
        description="Seconds between scan cycles",
    )
    max_alerts: int = Field(
        default=100,
        alias="MONITOR_MAX_ALERTS",
        ge=1,
        le=100_000,
        description="Maximum alerts retained in memory",
    )
    symbols: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_SYMBOLS,
        alias="MONITOR_SYMBOLS",
        description="Monitoring universe (comma-separated)",
    )
    auto_start: bool = Field(
        default=True,
        alias="MONITOR_AUTO_START",
        description="Start scanning as soon as the process starts",
    )

    @field_validator("symbols", mode="before")
    @classmethod
    def _parse_symbols(cls, v: object) -> tuple[str, ...]:
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",")]
        elif isinstance(v, (list, tuple)):
            parts = [str(x).strip() for x in v]
        else:
            raise TypeError("Invalid MONITOR_SYMBOLS type")

        symbols = tuple(dict.fromkeys(p.upper() for p in parts if p))
        if not symbols:
            raise ValueError("MONITOR_SYMBOLS must name at least one symbol")
        return symbols


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from pump_detector.config import get_settings

        settings = get_settings()
        print(settings.detection.min_profit_margin_pct)
        print(settings.monitor.symbols)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    binance: BinanceSettings = Field(
        default_factory=lambda: BinanceSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    detection: DetectionSettings = Field(
        default_factory=lambda: DetectionSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    monitor: MonitorSettings = Field(
        default_factory=lambda: MonitorSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def summary(self) -> dict[str, object]:
        """Get the configuration echo reported by the query surface."""
        return {
            "capital": self.detection.capital,
            "min_profit_margin_pct": self.detection.min_profit_margin_pct,
            "monitor_interval_seconds": self.monitor.interval_seconds,
            "history_window_minutes": self.detection.window_minutes,
            "max_points": self.detection.max_points,
            "debounce_seconds": self.detection.debounce_seconds,
            "max_alerts": self.monitor.max_alerts,
            "tokens_monitored": len(self.monitor.symbols),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
