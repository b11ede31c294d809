from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from kamjai.domain.constants import (
    DEFAULT_DAILY_REVIEW_TARGET,
    DEFAULT_REVIEW_QUEUE_LIMIT,
    DEFAULT_REVIEW_SESSION_SIZE,
    DEFAULT_SPEECH_LOCALE,
    DEFAULT_STREAK_WINDOW_DAYS,
    DEFAULT_TICK_INTERVAL_MS,
    DEFAULT_VOCAB_LIMIT,
    MATCH_CONFIDENCE_THRESHOLD,
    MAX_EDIT_DISTANCE,
    SPEECH_REQUEST_TIMEOUT,
)

CONFIG_FILE = Path.home() / ".config/kamjai/config.toml"


class AppConfig(BaseSettings):
    """
    Configuration model for kamjai.
    Supports loading from:
    1. Environment variables (KAMJAI_*)
    2. Config file (~/.config/kamjai/config.toml)
    3. Manual overrides (CLI / HTTP)
    """

    model_config = SettingsConfigDict(
        env_prefix="KAMJAI_",
        extra="ignore",
    )

    # Content & persistence
    content_path: Path | None = None
    progress_path: Path | None = None
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/kamjai/logs")

    # Intent matching (heuristics, treated as configuration)
    match_confidence_threshold: float = MATCH_CONFIDENCE_THRESHOLD
    max_edit_distance: int = MAX_EDIT_DISTANCE

    # Session engine
    exclude_paused_time: bool = True
    tick_interval_ms: int = Field(default=DEFAULT_TICK_INTERVAL_MS, gt=0)
    vocab_limit: int = DEFAULT_VOCAB_LIMIT

    # Review
    review_queue_limit: int = DEFAULT_REVIEW_QUEUE_LIMIT
    review_session_size: int = DEFAULT_REVIEW_SESSION_SIZE
    daily_review_target: int = DEFAULT_DAILY_REVIEW_TARGET
    streak_window_days: int = DEFAULT_STREAK_WINDOW_DAYS

    # Speech
    speech_locale: str = DEFAULT_SPEECH_LOCALE
    speech_endpoint: str | None = None
    speech_timeout: float = SPEECH_REQUEST_TIMEOUT

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

        # Overrides beat the environment, which beats the config file
        if CONFIG_FILE.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=CONFIG_FILE),
            )
        return (init_settings, env_settings)

    @field_validator("match_confidence_threshold")
    @classmethod
    def clamp_threshold(cls, v: float) -> float:
        return max(0.0, min(1.0, v))

    @field_validator("max_edit_distance")
    @classmethod
    def non_negative_distance(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_edit_distance must be >= 0")
        return v

    @field_validator("content_path", "progress_path", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/kamjai/config.toml (if exists)
    3. Environment variables (KAMJAI_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
