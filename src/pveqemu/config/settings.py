from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .paths import default_config_path, expand_path

CONFIG_ENV_VAR = "PVEQEMU_CONFIG"


class RetryConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    max_attempts: int = Field(default=3, ge=1)
    delay: float = Field(default=8.0, ge=0)
    deadline: float | None = Field(default=None, ge=0)


class CodecConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    strict: bool = False
    locally_administered_macs: bool = False


class DefaultsConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    node: str = "pve"
    cpu: str = "host"


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    retry: RetryConfig = Field(default_factory=RetryConfig)
    codec: CodecConfig = Field(default_factory=CodecConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def _toml_string(value: str) -> str:
    return json.dumps(value)


def render_settings_toml(settings: Settings) -> str:
    lines = [
        "# pveqemu configuration",
        "",
        "[retry]",
        f"max_attempts = {settings.retry.max_attempts}",
        f"delay = {settings.retry.delay}",
    ]
    if settings.retry.deadline is not None:
        lines.append(f"deadline = {settings.retry.deadline}")
    lines += [
        "",
        "[codec]",
        f"strict = {str(settings.codec.strict).lower()}",
        "locally_administered_macs = "
        f"{str(settings.codec.locally_administered_macs).lower()}",
        "",
        "[defaults]",
        f"node = {_toml_string(settings.defaults.node)}",
        f"cpu = {_toml_string(settings.defaults.cpu)}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
