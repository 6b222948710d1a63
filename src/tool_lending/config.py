"""Configuration management for the Tool Lending engine.

Every business policy number the engine uses lives here rather than in the
code paths that apply it:
1. Fees - late fee rate applied to the tool's daily rate
2. Condition policy - usage thresholds and trailing windows
3. Housekeeping - retention of cancelled reservations, maintenance lead time
4. Concurrency - bounded lock waits
5. Observability - logging level and logfire export
"""

from decimal import Decimal
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseSettings):
    """Tool lending engine configuration.

    Values come from (highest priority first) constructor arguments,
    ``TOOL_LENDING_*`` environment variables, a local ``.env`` file and the
    defaults below.
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOL_LENDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/tool_lending.db"),
        description="SQLite database file path",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides database_path when set",
    )

    # === Fee Policy ===

    late_fee_rate: Decimal = Field(
        default=Decimal("0.5"),
        description="Fraction of the daily rate charged per day late",
        ge=0,
    )

    # === Reservation Policy ===

    auto_confirm_reservations: bool = Field(
        default=True,
        description="Create reservations as CONFIRMED instead of PENDING",
    )

    checkout_window_days: int = Field(
        default=2,
        description="Furthest a pickup may be from the reservation start, in days",
        ge=0,
    )

    max_calendar_days: int = Field(
        default=366,
        description="Longest range build_calendar will expand",
        ge=1,
    )

    # === Condition Degradation Policy ===

    usage_window_days: int = Field(
        default=30,
        description="Trailing window for usage days in the degradation pass",
        ge=1,
    )

    repair_window_days: int = Field(
        default=7,
        description="Trailing window in which a completed repair restores GOOD",
        ge=1,
    )

    excellent_to_good_usage_days: int = Field(
        default=20,
        description="Usage days above which an EXCELLENT tool degrades to GOOD",
        ge=0,
    )

    good_to_fair_usage_days: int = Field(
        default=15,
        description="Usage days above which a GOOD tool degrades to FAIR",
        ge=0,
    )

    # === Maintenance Policy ===

    maintenance_lead_days: int = Field(
        default=1,
        description="Days between a maintenance-triggering return and the window",
        ge=0,
    )

    maintenance_usage_window_days: int = Field(
        default=90,
        description="Trailing window for automatic maintenance scheduling",
        ge=1,
    )

    fair_inspection_usage_days: int = Field(
        default=30,
        description="Usage days above which a FAIR tool gets an inspection",
        ge=0,
    )

    routine_cleaning_usage_days: int = Field(
        default=60,
        description="Usage days above which any tool gets a cleaning",
        ge=0,
    )

    # === Housekeeping ===

    cancelled_retention_days: int = Field(
        default=30,
        description="Days a cancelled reservation is kept before cleanup",
        ge=0,
    )

    # === Concurrency ===

    lock_timeout_seconds: float = Field(
        default=5.0,
        description="Maximum wait for a per-tool lock",
        gt=0,
        le=60,
    )

    # === Logging / Observability ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    observability_enabled: bool = Field(
        default=False,
        description="Configure logfire tracing at startup",
    )

    logfire_token: str | None = Field(
        default=None,
        description="Logfire write token",
        repr=False,
    )

    environment: str = Field(
        default="development",
        description="Deployment environment reported to logfire",
    )

    logfire_console: bool = Field(
        default=False,
        description="Echo spans to the console",
    )

    # === Validation Methods ===

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Store the database path as an absolute path."""
        return v.absolute()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        if isinstance(v, str):
            return v.upper()
        return v

    @model_validator(mode="after")
    def validate_thresholds(self) -> "EngineConfig":
        """A GOOD tool must never degrade on less usage than an EXCELLENT one."""
        if self.good_to_fair_usage_days > self.excellent_to_good_usage_days:
            raise ValueError(
                "good_to_fair_usage_days cannot exceed excellent_to_good_usage_days"
            )
        if self.repair_window_days > self.usage_window_days:
            raise ValueError("repair_window_days cannot exceed usage_window_days")
        return self

    # === Computed Properties ===

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


# === Global Configuration Instance ===


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: EngineConfig | None = None


def get_config() -> EngineConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = EngineConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
