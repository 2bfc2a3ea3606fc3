"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (NEWSBRIEF__CACHE__TTL_SECONDS=600)
  2. newsbrief.yaml         (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("newsbrief")

SUMMARY_PROMPT = (
    "Create a concise summary that highlights the main points and crucial details "
    "of the provided news text. Eliminate unnecessary language and focus on the most "
    "important information use Headings followed by a short paragraph of concise text."
)

DEFAULT_COMMAND = (
    "curl -s https://www.ft.com/ | strip-tags .n-layout | ttok -t 4000 | "
    f"llm -m 4o --system '{SUMMARY_PROMPT}'"
)


def _find_config_file() -> str | None:
    """Return the path of the first newsbrief.yaml found, or None."""
    candidates = [
        Path("newsbrief.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "newsbrief.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class _Section(BaseModel):
    # A typo in a nested key fails loudly instead of falling back to a default.
    model_config = ConfigDict(extra="forbid")


class ServerSettings(_Section):
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


class CacheSettings(_Section):
    ttl_seconds: float = Field(default=3600, gt=0)
    warm_on_startup: bool = False


class SourceSettings(_Section):
    name: str = Field(min_length=1)
    url: HttpUrl


def _default_sources() -> list[SourceSettings]:
    return [
        SourceSettings(name="Financial Times", url="https://www.ft.com/rss/home"),
        SourceSettings(name="BBC Business", url="https://feeds.bbci.co.uk/news/business/rss.xml"),
    ]


class FetcherSettings(_Section):
    mode: Literal["command", "feeds"] = "command"

    # command mode
    command: str = DEFAULT_COMMAND
    shell: str = "bash"
    command_timeout_seconds: float = Field(default=120, gt=0)

    # feeds mode
    sources: list[SourceSettings] = Field(default_factory=_default_sources)
    source_timeout_seconds: float = Field(default=10, gt=0)
    max_items_per_source: int = Field(default=5, ge=1)
    summary_chars: int = Field(default=280, ge=20)
    user_agent: str = "newsbrief/0.1 (+https://github.com/newsbrief/newsbrief)"


class PageSettings(_Section):
    title: str = "Current Time & News"
    heading: str = "FT News Summary"
    auto_refresh_seconds: int = Field(default=1, ge=0)
    cache_max_age_seconds: int = Field(default=1, ge=0)
    renderer: Literal["markdown", "pre"] = "markdown"


class LoggingSettings(_Section):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: NEWSBRIEF__SERVER__PORT=9090
        env_prefix="NEWSBRIEF__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    cache: CacheSettings = CacheSettings()
    fetcher: FetcherSettings = FetcherSettings()
    page: PageSettings = PageSettings()
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
