"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SOURCEPREVIEW__PREVIEW__TTL_DAYS=3)
  2. sourcepreview.yaml     (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("sourcepreview")
_DEFAULT_CACHE_PATH = str(Path(_DEFAULT_DATA_DIR) / "source-preview-cache.json")


def _find_config_file() -> str | None:
    """Return the path of the first sourcepreview.yaml found, or None."""
    candidates = [
        Path("sourcepreview.yaml"),
        Path(platformdirs.user_config_dir("sourcepreview")) / "sourcepreview.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class PreviewSettings(BaseModel):
    ttl_days: float = Field(default=7.0, gt=0)
    cache_path: str = _DEFAULT_CACHE_PATH
    persist: bool = True
    max_download_bytes: int = Field(default=64 * 1024, ge=1)
    request_timeout: float = Field(default=7.0, gt=0)
    user_agent: str = "Mozilla/5.0 sourcepreview/1.0"
    accept: str = "text/html,application/xhtml+xml"


class OEmbedSettings(BaseModel):
    endpoint: str = "https://publish.twitter.com/oembed"
    omit_script: bool = True


class RedirectSettings(BaseModel):
    request_timeout: float = Field(default=8.0, gt=0)
    resolve_query_parameters: bool = True


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SOURCEPREVIEW__OEMBED__ENDPOINT=...
        env_prefix="SOURCEPREVIEW__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    preview: PreviewSettings = PreviewSettings()
    oembed: OEmbedSettings = OEmbedSettings()
    redirect: RedirectSettings = RedirectSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
