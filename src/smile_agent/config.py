"""Configuration loading for the agent engine and CLI."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Literal, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "config.yaml"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "project": {
        "name": "",
        "workspace_root": ".",
    },
    "models": {
        "provider": "ollama",
        "base_url": "http://localhost:11434",
        "model": "llama3",
        "api_key_env": "OPENAI_API_KEY",
        "timeout": 30,
    },
    "execution": {
        "planning_temperature": 0.2,
        "task_temperature": 0.4,
        "recovery_temperature": 0.2,
        "max_tokens": 2048,
    },
    "paths": {
        "logs": "data/logs",
    },
}


class SettingsModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ModelSettings(SettingsModel):
    """Generative backend connection settings."""

    provider: Literal["openai", "ollama"] = "ollama"
    base_url: str = "http://localhost:11434"
    model: str = "llama3"
    api_key_env: str | None = "OPENAI_API_KEY"
    timeout: float = Field(default=30.0, gt=0)


class ExecutionConfig(SettingsModel):
    """Sampling settings used by synthesis, execution and recovery."""

    planning_temperature: float = Field(default=0.2, ge=0, le=2)
    task_temperature: float = Field(default=0.4, ge=0, le=2)
    recovery_temperature: float = Field(default=0.2, ge=0, le=2)
    max_tokens: int = Field(default=2048, gt=0)


class EngineSettings(SettingsModel):
    """Validated view over ``config.yaml``."""

    workspace_root: Path = Path(".")
    logs_root: Path | None = None
    models: ModelSettings = Field(default_factory=ModelSettings)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)


def copy_config_template() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def write_config(config_path: Path, config_data: Mapping[str, Any]) -> None:
    """Persist configuration data to disk with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dict(config_data), handle, sort_keys=False)


def load_config(config_path: Path) -> EngineSettings:
    """Load ``config_path`` and resolve relative paths against its directory.

    A missing file yields the defaults anchored at the file's directory.
    """
    data = _merge(copy_config_template(), _read_yaml(config_path))
    base_dir = config_path.resolve().parent

    project = data.get("project") or {}
    paths = data.get("paths") or {}
    workspace_root = _resolve_path(project.get("workspace_root") or ".", base_dir)
    logs_value = paths.get("logs")
    logs_root = _resolve_path(logs_value, base_dir) if logs_value else None

    try:
        return EngineSettings(
            workspace_root=workspace_root,
            logs_root=logs_root,
            models=data.get("models") or {},
            execution=data.get("execution") or {},
        )
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration in {config_path}: {error}") from error


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {config_path}: {error}") from error
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")
    return data


def _merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = _merge(base[key], value)
        else:
            base[key] = value
    return base


def _resolve_path(value: Any, base_dir: Path) -> Path:
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return path


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONFIG_TEMPLATE",
    "EngineSettings",
    "ExecutionConfig",
    "ModelSettings",
    "copy_config_template",
    "load_config",
    "write_config",
]
