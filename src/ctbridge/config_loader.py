# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Layered configuration loading (defaults, TOML files, environment)."""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final, Protocol

from pydantic import ValidationError

from .config import BridgeConfig, ConfigError

PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "ctbridge"
PROJECT_CONFIG_NAME: Final[str] = "ctbridge.toml"
ENV_PREFIX: Final[str] = "CTBRIDGE_"


class ConfigSource(Protocol):
    """Source of a partial configuration mapping."""

    name: str

    def load(self) -> Mapping[str, Any]:
        """Return the configuration fragment provided by this source."""
        ...


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class DefaultConfigSource:
    """Return the built-in defaults as a configuration fragment."""

    name = "defaults"

    def load(self) -> Mapping[str, Any]:
        return BridgeConfig().model_dump()


class TomlConfigSource:
    """Load configuration data from a standalone TOML document."""

    def __init__(self, path: Path, *, name: str | None = None) -> None:
        self._path = path
        self.name = name or str(path)

    def load(self) -> Mapping[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            with self._path.open("rb") as handle:
                data = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"Unable to read {self._path}: {exc}") from exc
        return data


class PyProjectConfigSource(TomlConfigSource):
    """Read configuration from ``[tool.ctbridge]`` within ``pyproject.toml``."""

    def load(self) -> Mapping[str, Any]:
        data = super().load()
        tool_section = data.get(PYPROJECT_TOOL_KEY)
        if not isinstance(tool_section, Mapping):
            return {}
        section = tool_section.get(PYPROJECT_SECTION_KEY)
        if not isinstance(section, Mapping):
            return {}
        return dict(section)


class EnvironmentConfigSource:
    """Read ``CTBRIDGE_*`` overrides from the process environment.

    Values starting with ``[`` or ``{`` are decoded as JSON so lists can be
    supplied (``CTBRIDGE_LINUX_PREFIX='["wsl", "-d", "Ubuntu"]'``); anything
    else is passed through as a string for pydantic to coerce.
    """

    name = "environment"

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = env if env is not None else os.environ

    def load(self) -> Mapping[str, Any]:
        fields = BridgeConfig.model_fields
        fragment: dict[str, Any] = {}
        for key, raw in self._env.items():
            if not key.startswith(ENV_PREFIX):
                continue
            field_name = key[len(ENV_PREFIX) :].lower()
            if field_name not in fields:
                continue
            fragment[field_name] = _decode_env_value(raw)
        return fragment


def _decode_env_value(raw: str) -> Any:
    if not raw.lstrip().startswith(("[", "{")):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in environment override: {raw!r}") from exc


class ConfigLoader:
    """Apply layered configuration sources with predictable precedence."""

    def __init__(self, *, project_root: Path, sources: Sequence[ConfigSource]) -> None:
        """Initialise a loader that merges the supplied configuration sources.

        Args:
            project_root: Directory that anchors relative paths.
            sources: Ordered collection of configuration sources, lowest
                precedence first.

        Raises:
            ValueError: If ``sources`` is empty.
        """

        if not sources:
            raise ValueError("at least one configuration source is required")
        self._sources = list(sources)
        self._project_root = project_root.resolve()

    @classmethod
    def for_root(cls, project_root: Path, *, env: Mapping[str, str] | None = None) -> ConfigLoader:
        """Build a loader for ``project_root`` using the default precedence.

        Args:
            project_root: Workspace root used to discover configuration files.
            env: Optional environment mapping overriding :data:`os.environ`.

        Returns:
            ConfigLoader: Loader reading defaults, ``pyproject.toml``,
            ``ctbridge.toml``, then ``CTBRIDGE_*`` variables.
        """

        root = project_root.resolve()
        sources: list[ConfigSource] = [
            DefaultConfigSource(),
            PyProjectConfigSource(root / "pyproject.toml"),
            TomlConfigSource(root / PROJECT_CONFIG_NAME),
            EnvironmentConfigSource(env),
        ]
        return cls(project_root=root, sources=sources)

    def load(self) -> BridgeConfig:
        """Return the merged configuration.

        Returns:
            BridgeConfig: Validated configuration model.

        Raises:
            ConfigError: If a source is unreadable or the merged data is invalid.
        """

        merged: dict[str, Any] = {}
        for source in self._sources:
            merged = _deep_merge(merged, source.load())
        for key in ("dev_root", "resources_dir"):
            value = merged.get(key)
            if isinstance(value, str) and value and not Path(value).is_absolute():
                merged[key] = str(self._project_root / value)
        try:
            return BridgeConfig.model_validate(merged)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc


__all__ = [
    "ConfigLoader",
    "ConfigSource",
    "DefaultConfigSource",
    "EnvironmentConfigSource",
    "PyProjectConfigSource",
    "TomlConfigSource",
]
