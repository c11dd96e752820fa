"""Installation settings contract.

Values are layered, lowest precedence first: built-in defaults, a
``closure-util.json`` found from the installation path upward, the first
``closure-util.json`` found from the working directory upward, then
``CLOSURE_``-prefixed environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_NAME = "closure-util.json"
ENV_PREFIX = "CLOSURE_"

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def find_upwards(start: Path, name: str = CONFIG_NAME) -> Path | None:
    """Return the first ``name`` in ``start`` or any of its parents."""
    directory = start if start.is_dir() else start.parent
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / name
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    log_level: str = "INFO"
    log_json: bool = False
    compiler_dir: str = Field(default="", description="Directory holding the compiler jar.")
    library_dir: str = Field(default="", description="Directory holding the Closure Library.")
    java: str = "java"
    jvm_flags: list[str] = Field(default_factory=lambda: ["-server", "-XX:+TieredCompilation"])
    host: str = "127.0.0.1"
    port: int = 3000

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(f"unknown log level: {value}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        install_path = find_upwards(Path(__file__).resolve().parent)
        cwd_path = find_upwards(Path.cwd())
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls, json_file=cwd_path),
            JsonConfigSettingsSource(settings_cls, json_file=install_path),
        )


def load_settings(**overrides: object) -> Settings:
    """Build the settings once; callers pass the value down explicitly."""
    return Settings(**overrides)
