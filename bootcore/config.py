"""
bootcore - Configuration

Core configuration (where components live, which runtime environment is
active, how the logger behaves) and project configuration (one mapping per
component, selected by runtime environment).

Configuration flows from environment variables (``.env`` honoured) → core
config file (``bootcore.yaml``/``bootcore.yml``/``bootcore.json`` in the
working directory) → explicit override mapping, each layer overriding the
previous one. The merged result is validated before anything is discovered.
"""
from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bootcore.errors import ConfigValidationError
from bootcore.naming import DerivedNames

CORE_CONFIG_FILES = ("bootcore.yaml", "bootcore.yml", "bootcore.json")
PROJECT_CONFIG_SUFFIXES = (".yaml", ".yml", ".json")

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


# =============================================================================
# DIRECTORY CHECKS
# =============================================================================


def check_directory(location: Union[str, Path]) -> bool:
    """Whether ``location`` is an existing, readable directory."""
    path = Path(location)
    return path.is_dir() and os.access(path, os.R_OK)


def ensure_directory(location: Union[str, Path]) -> bool:
    """Create ``location`` when missing; False when it cannot be created."""
    try:
        Path(location).mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return check_directory(location)


# =============================================================================
# CORE CONFIG MODELS
# =============================================================================


class RequiredLocationConfig(BaseModel):
    """A component directory that must exist."""

    model_config = ConfigDict(extra="forbid")

    location: str = Field(default="./src")

    @field_validator("location")
    @classmethod
    def directory_exists(cls, value: str) -> str:
        if not check_directory(value):
            raise ValueError("Directory is not accessible")
        return value


class OptionalLocationConfig(BaseModel):
    """A component directory that may be left unset."""

    model_config = ConfigDict(extra="forbid")

    location: Optional[str] = Field(default=None)

    @field_validator("location")
    @classmethod
    def directory_exists_when_set(cls, value: Optional[str]) -> Optional[str]:
        if value and not check_directory(value):
            raise ValueError("Directory is not accessible")
        return value or None


class ModulesConfig(OptionalLocationConfig):
    location: Optional[str] = Field(default="./src")
    as_globals: bool = Field(default=True, description="Expose modules in the console namespace")


class ProjectConfigLocation(RequiredLocationConfig):
    location: str = Field(default="./src/config")


class TerminalLoggerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enable: bool = True


class LocalFileLoggerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enable: bool = False
    location: str = Field(default="./logs")

    @field_validator("location")
    @classmethod
    def directory_can_be_created(cls, value: str) -> str:
        if not ensure_directory(value):
            raise ValueError("Directory is not accessible")
        return value


class CoreLoggerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["FATAL", "ERROR", "WARNING", "QUERY", "INFO", "DEBUG", "TRACE"] = "INFO"
    silence: bool = False
    json_format: bool = False
    terminal: TerminalLoggerConfig = Field(default_factory=TerminalLoggerConfig)
    local_file: LocalFileLoggerConfig = Field(default_factory=LocalFileLoggerConfig)

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


def _default_environment() -> str:
    return os.getenv("BOOTCORE_ENV") or os.getenv("ENVIRONMENT") or "development"


class CoreConfig(BaseModel):
    """Validated core configuration."""

    model_config = ConfigDict(extra="forbid")

    apps: RequiredLocationConfig = Field(default_factory=RequiredLocationConfig)
    tasks: RequiredLocationConfig = Field(default_factory=RequiredLocationConfig)
    modules: ModulesConfig = Field(default_factory=ModulesConfig)
    environments: OptionalLocationConfig = Field(default_factory=lambda: OptionalLocationConfig(location="./src"))
    config: ProjectConfigLocation = Field(default_factory=ProjectConfigLocation)
    environment: str = Field(default_factory=_default_environment)
    logger: CoreLoggerConfig = Field(default_factory=CoreLoggerConfig)


# =============================================================================
# LOADING
# =============================================================================


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested mappings merge."""
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_file(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigValidationError(
            f"Could not parse configuration file {path}",
            errors=[f"{path} - {e}"],
            cause=e,
        ) from e


def _format_validation_error(error: ValidationError) -> List[str]:
    messages = []
    for issue in error.errors():
        path = ".".join(str(part) for part in issue["loc"]) or "<root>"
        messages.append(f"{path} - {issue['msg']}")
    return messages


def load_core_config(
    override: Optional[Mapping[str, Any]] = None,
    location: Optional[Union[str, Path]] = None,
) -> CoreConfig:
    """
    Load and validate the core configuration.

    Args:
        override: Mapping merged over the file contents
        location: Directory holding the core config file (default: cwd)

    Raises:
        ConfigValidationError: when a file cannot be parsed or the merged
            configuration is invalid
    """
    load_dotenv(override=False)

    directory = Path(location) if location is not None else Path.cwd()
    loaded: Dict[str, Any] = {}

    for filename in CORE_CONFIG_FILES:
        path = directory / filename
        if path.is_file():
            content = _read_file(path) or {}
            if not isinstance(content, Mapping):
                raise ConfigValidationError(
                    f"Core config file {path} must hold a mapping",
                    errors=[f"{path} - expected a mapping"],
                )
            loaded = dict(content)
            break

    if override:
        loaded = deep_merge(loaded, override)

    try:
        return CoreConfig.model_validate(loaded)
    except ValidationError as e:
        errors = _format_validation_error(e)
        raise ConfigValidationError(
            "Core config validation error",
            errors=errors,
            cause=e,
        ) from e


def _expand_env(value: Any, path: str) -> Any:
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            key = match.group(1)
            if key not in os.environ:
                raise ConfigValidationError(
                    f"Environment variable {key} is not set",
                    errors=[f"{path} - ${{{key}}} is not set"],
                )
            return os.environ[key]

        return _ENV_PATTERN.sub(replace, value)
    if isinstance(value, list):
        return [_expand_env(item, path) for item in value]
    if isinstance(value, dict):
        return {k: _expand_env(v, f"{path}.{k}" if path else str(k)) for k, v in value.items()}
    return value


def _select_environment(content: Any, environment: str) -> Any:
    # Files split by environment hold a "default" and/or per-environment sections
    if isinstance(content, Mapping) and ("default" in content or environment in content):
        base = content.get("default") or {}
        selected = content.get(environment) or {}
        if isinstance(base, Mapping) and isinstance(selected, Mapping):
            return deep_merge(base, selected)
        return selected if environment in content else base
    return content


def load_project_config(location: Union[str, Path], environment: str) -> Dict[str, Any]:
    """
    Load every configuration file in ``location`` into one mapping.

    ``redis.yaml`` becomes the ``redis`` key. ``redis.production.yaml``
    overrides it when ``environment`` is ``production`` and is ignored
    otherwise.
    """
    directory = Path(location)
    if not check_directory(directory):
        raise ConfigValidationError(
            f"Config directory {directory} is not accessible",
            errors=[f"{directory} - Directory is not accessible"],
        )

    base: Dict[str, Any] = {}
    overrides: Dict[str, Any] = {}

    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix not in PROJECT_CONFIG_SUFFIXES:
            continue

        parts = path.stem.split(".")
        if len(parts) == 2:
            key, file_environment = parts
            if file_environment != environment:
                continue
            target = overrides
        else:
            key = path.stem
            target = base

        content = _expand_env(_read_file(path), key)
        target[key] = _select_environment(content, environment)

    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), Mapping):
            base[key] = deep_merge(base[key], value)
        else:
            base[key] = value

    return base


def component_config(
    project_config: Mapping[str, Any],
    names: DerivedNames,
    suffix: Optional[str] = None,
) -> Any:
    """
    Find a component's configuration slice by its derived name forms.

    With ``suffix="module"`` a module named ``good`` is looked up as
    ``good-module``, ``GoodModule``, ``goodModule``, ``good_module`` and then
    ``good``, ``Good``, ``good``...
    """
    candidates: List[str] = []
    if suffix and not names.param.endswith(f"-{suffix}") and names.param != suffix:
        full = DerivedNames.from_name(f"{names.raw} {suffix}")
        candidates.extend([full.param, full.pascal, full.camel, full.snake])
    candidates.extend([names.param, names.pascal, names.camel, names.snake, names.raw])

    for key in candidates:
        if project_config.get(key) is not None:
            return project_config[key]
    return None


__all__ = [
    "CoreConfig",
    "CoreLoggerConfig",
    "ModulesConfig",
    "RequiredLocationConfig",
    "OptionalLocationConfig",
    "check_directory",
    "ensure_directory",
    "deep_merge",
    "load_core_config",
    "load_project_config",
    "component_config",
]
