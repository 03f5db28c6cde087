"""Configuration loading helpers for sieve."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import SieveOptions

OPTIONS_FILENAME = "options.yaml"
CACHE_FILENAME = "cache.db"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    if path.suffix in (".yaml", ".yml"):
        with path.open("w", encoding="utf-8") as stream:
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
    else:
        with path.open("w", encoding="utf-8") as stream:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from the sieve home directory."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("SIEVE_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.home() / ".sieve").resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def options_path(self) -> Path:
        return self.project_root / OPTIONS_FILENAME

    def cache_path(self) -> Path:
        return self.data_dir / CACHE_FILENAME


class ConfigRepository:
    """Repository encapsulating options IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._options_cache: SieveOptions | None = None

    def load_options(self) -> SieveOptions:
        if self._options_cache is not None:
            return self._options_cache
        path = self.locator.options_path()
        if path.exists():
            options = SieveOptions.model_validate(_read_file(path))
        else:
            options = SieveOptions()
        self._options_cache = options
        return options

    def save_options(self, options: SieveOptions) -> Path:
        path = self.locator.options_path()
        _write_file(path, options.model_dump(mode="json"))
        self._options_cache = options
        return path


__all__ = ["ConfigLocator", "ConfigRepository"]
