"""vodbot.config – the JSON configuration file and its schema."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import DEFAULT_CLIENT_ID
from .errors import ConfigError
from .models import ContentKind
from .sidecar import write_json_atomic

logger = logging.getLogger(__name__)

APP_NAME = "vodbot"
CONFIG_FILE = "config.json"


def app_dir() -> Path:
    return Path(typer.get_app_dir(APP_NAME))


def default_config_path() -> Path:
    return app_dir() / CONFIG_FILE


def _from_app_dir(*parts: str) -> Path:
    return app_dir().joinpath(*parts)


class _SaveFlags(BaseModel):
    model_config = ConfigDict(extra="allow")

    save_vods: bool = True
    save_highlights: bool = True
    save_uploads: bool = True
    save_premieres: bool = True
    save_clips: bool = True
    save_chat: bool = True

    def saves(self, kind: ContentKind) -> bool:
        return getattr(self, f"save_{kind.value}")


class ChannelConfig(_SaveFlags):
    username: str = Field(min_length=3, max_length=24)


class PullConfig(_SaveFlags):
    gql_client_id: str = DEFAULT_CLIENT_ID
    max_download_workers: int = Field(default_factory=lambda: os.cpu_count() or 1, ge=1)
    connection_timeout: float = Field(default=5, gt=0)
    ffmpeg_path: str = "ffmpeg"
    ffmpeg_loglevel: str = "warning"


class DirectoriesConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    vods: Path = Field(default_factory=lambda: _from_app_dir("videos", "vods"))
    highlights: Path = Field(default_factory=lambda: _from_app_dir("videos", "highlights"))
    uploads: Path = Field(default_factory=lambda: _from_app_dir("videos", "uploads"))
    premieres: Path = Field(default_factory=lambda: _from_app_dir("videos", "premieres"))
    clips: Path = Field(default_factory=lambda: _from_app_dir("videos", "clips"))
    chat: Path = Field(default_factory=lambda: _from_app_dir("chat"))
    temp: Path = Field(default_factory=lambda: _from_app_dir("temp"))

    def for_kind(self, kind: ContentKind) -> Path:
        return getattr(self, kind.value)

    def all(self) -> list[Path]:
        return [getattr(self, name) for name in type(self).model_fields]


class Config(BaseModel):
    model_config = ConfigDict(extra="allow")

    channels: list[ChannelConfig] = []
    pull: PullConfig = Field(default_factory=PullConfig)
    directories: DirectoriesConfig = Field(default_factory=DirectoriesConfig)

    def wants(self, channel: ChannelConfig, kind: ContentKind) -> bool:
        """A kind is pulled for a channel only when both it and the global flag allow it."""
        return channel.saves(kind) and self.pull.saves(kind)


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if model.model_extra:
        logger.warning("Unknown keys in %s at %s: %s", path, config_path, list(model.model_extra))
    for name, value in model.__dict__.items():
        if isinstance(value, BaseModel):
            _warn_unknown_keys(value, f"{path}.{name}", config_path)
        elif isinstance(value, list):
            for i, item in enumerate(value):
                if isinstance(item, BaseModel):
                    _warn_unknown_keys(item, f"{path}.{name}[{i}]", config_path)


def load_config(path: Optional[Path] = None) -> Config:
    """Load and validate the config file; any problem is a :class:`ConfigError`."""
    path = path or default_config_path()
    if not path.exists():
        raise ConfigError(f"Config file `{path}` does not exist, run `vodbot init` first.")
    try:
        with path.open(encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigError(f'Failed to read config `{path}`, reason: "{exc}".') from exc

    try:
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config `{path}`:\n{exc}") from exc
    _warn_unknown_keys(config, "root", path)
    return config


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    path = path or default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    return write_json_atomic(path, config.model_dump(mode="json", exclude_unset=False))
