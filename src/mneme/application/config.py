from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from mneme.domain.constants import (
    DEFAULT_MAX_INTERVAL_DAYS,
    DEFAULT_MAX_SESSION_MINUTES,
    DEFAULT_MINUTES_PER_CARD,
    DEFAULT_TARGET_RETENTION,
    MASTERED_MIN_LEVEL,
    MASTERED_MIN_REPETITIONS,
    STRUGGLING_MAX_EASINESS,
    STRUGGLING_MIN_REPETITIONS,
)
from mneme.domain.schedule.models import StudyPreferences, TimeWindow
from mneme.domain.stats.models import StatsThresholds

CONFIG_FILES = [
    Path.home() / ".config/mneme/config.toml",
    Path.home() / ".mneme.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for mneme.
    Supports loading from:
    1. Environment variables (MNEME_*)
    2. Config file (~/.config/mneme/config.toml)
    3. Manual overrides (CLI / API)
    """

    model_config = SettingsConfigDict(
        env_prefix="MNEME_",
        extra="ignore",
    )

    # Storage
    backend: Literal["memory", "sqlite"] = "sqlite"
    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/mneme/mneme.db"
    )

    # Scheduling
    max_interval_days: int = Field(default=DEFAULT_MAX_INTERVAL_DAYS, ge=1)

    # Stats thresholds
    mastered_repetitions: int = Field(default=MASTERED_MIN_REPETITIONS, ge=0)
    mastered_level: float = Field(default=MASTERED_MIN_LEVEL, ge=0.0, le=1.0)
    struggling_easiness: float = STRUGGLING_MAX_EASINESS
    struggling_repetitions: int = Field(default=STRUGGLING_MIN_REPETITIONS, ge=0)

    # Default study preferences
    time_windows: list[TimeWindow] = Field(
        default_factory=lambda: [TimeWindow.MORNING, TimeWindow.EVENING]
    )
    max_session_minutes: int = Field(default=DEFAULT_MAX_SESSION_MINUTES, gt=0)
    target_retention: float = Field(default=DEFAULT_TARGET_RETENTION, gt=0.0, le=1.0)
    minutes_per_card: int = Field(default=DEFAULT_MINUTES_PER_CARD, gt=0)

    # Notifications
    notification_webhook_url: str | None = None

    # Server
    server_host: str = "127.0.0.1"
    server_port: int = 8787

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing config file wins
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("database_path", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser()

    def stats_thresholds(self) -> StatsThresholds:
        return StatsThresholds(
            mastered_repetitions=self.mastered_repetitions,
            mastered_level=self.mastered_level,
            struggling_easiness=self.struggling_easiness,
            struggling_repetitions=self.struggling_repetitions,
        )

    def study_preferences(self) -> StudyPreferences:
        return StudyPreferences(
            available_time_windows=frozenset(self.time_windows),
            max_session_minutes=self.max_session_minutes,
            target_retention=self.target_retention,
            minutes_per_card=self.minutes_per_card,
        )


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/mneme/config.toml (if exists)
    3. Environment variables (MNEME_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
