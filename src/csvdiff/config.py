"""Configuration file discovery for csv-diff."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:  # pragma: no cover - fallback for Python < 3.11
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback import
    import tomli as tomllib  # type: ignore[no-redef]

import yaml

from .errors import CsvDiffError

CONFIG_FILENAMES = [".csvdiff.toml", ".csvdiff.yaml", ".csvdiff.yml", ".csvdiff.json"]


class ConfigError(CsvDiffError):
    """Raised when a configuration file cannot be parsed."""


@dataclass(slots=True)
class LoadedConfig:
    """Container for a configuration file discovered on disk."""

    path: Path | None
    data: dict[str, Any]

    @property
    def exists(self) -> bool:
        return self.path is not None

    def section(self, name: str) -> dict[str, Any]:
        value = self.data.get(name, {})
        if not isinstance(value, dict):
            raise ConfigError(f"[{name}] in {self.path} must be a table")
        return value

    @property
    def defaults(self) -> dict[str, Any]:
        return self.section("defaults")

    @property
    def file_types(self) -> dict[str, Any]:
        return self.section("file_types")


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise ConfigError("YAML configuration must be a mapping at the top level")
    return loaded


def _load_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        loaded = json.load(handle)
    if not isinstance(loaded, dict):
        raise ConfigError("JSON configuration must be a mapping at the top level")
    return loaded


def _load_file(candidate: Path) -> dict[str, Any]:
    try:
        if candidate.suffix == ".toml":
            return _load_toml(candidate)
        if candidate.suffix in {".yaml", ".yml"}:
            return _load_yaml(candidate)
        return _load_json(candidate)
    except (tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Unable to parse {candidate}: {exc}") from exc


def load_config(base_dir: Path | None = None) -> LoadedConfig:
    """Load configuration from disk using precedence TOML > YAML > JSON."""

    search_root = base_dir or Path.cwd()

    for name in CONFIG_FILENAMES:
        candidate = search_root / name
        if not candidate.exists():
            continue
        return LoadedConfig(path=candidate, data=_load_file(candidate))

    return LoadedConfig(path=None, data={})


def find_config(search_dirs: Iterable[Path]) -> LoadedConfig:
    """Return the first configuration found in ``search_dirs``, in order."""

    seen: set[Path] = set()
    for directory in search_dirs:
        resolved = directory.expanduser().resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        loaded = load_config(resolved)
        if loaded.exists:
            return loaded
    return LoadedConfig(path=None, data={})


__all__ = ["CONFIG_FILENAMES", "ConfigError", "LoadedConfig", "find_config", "load_config"]
