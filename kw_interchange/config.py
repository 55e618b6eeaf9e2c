"""Runtime settings read from ``KWI_*`` environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


ENV_PREFIX = "KWI_"


class Settings(BaseSettings):
    """Settings for a keyword interchange run."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        extra="ignore",
    )

    batch_dir: Path = Path("./batch")
    document_type_group: Optional[str] = None
    download_dir: Optional[Path] = None
    repository_snapshot: Optional[Path] = None
    log_level: str = "INFO"
    show_progress: bool = True

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level

    @property
    def resolved_download_dir(self) -> Path:
        return self.download_dir or self.batch_dir / "downloads"


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment.

    Args:
        **overrides: Values that win over the environment (``None`` is ignored)

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If a value fails validation
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid settings: {exc}") from exc
