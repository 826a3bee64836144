"""Configuration manager for Image Tagger."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG: dict[str, Any] = {
    "store": {
        "path": ".image_tagger.db",
        "autosave": True,
    },
    "scanning": {
        "image_extensions": [
            "gif", "png", "bmp", "jpeg", "tif", "raw", "jpg",
        ],
        "ignore_hidden": True,
    },
    "rename_log": {
        "path": "renameLogs.txt",
        "timestamp_format": "%Y/%m/%d %H:%M:%S",
    },
    "export": {
        "root": "~",
        "open_after_export": False,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def get_root_config_path(root: str | Path) -> Path:
    """Return <root>/.image_tagger.yaml for a tagged directory tree."""
    return Path(root) / ".image_tagger.yaml"


class ConfigManager:
    """Load, save, and access YAML configuration with defaults."""

    def __init__(self, config_path: str | Path | None = None):
        self._path = Path(config_path) if config_path else None
        self._config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        if self._path and self._path.exists():
            self.load()

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    def load(self, config_path: str | Path | None = None) -> None:
        """Load config from YAML file, merging with defaults."""
        path = Path(config_path) if config_path else self._path
        if path is None:
            raise ValueError("No config path specified")
        self._path = path
        with open(path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        self._config = _deep_merge(DEFAULT_CONFIG, user_config)

    def save(self, config_path: str | Path | None = None) -> None:
        """Save current config to YAML file."""
        path = Path(config_path) if config_path else self._path
        if path is None:
            raise ValueError("No config path specified")
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self._config, f, default_flow_style=False, sort_keys=False)

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a config value using dotted notation (e.g. 'store.path')."""
        keys = dotted_key.split(".")
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, dotted_key: str, value: Any) -> None:
        """Set a config value using dotted notation."""
        keys = dotted_key.split(".")
        target = self._config
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value

    def image_extensions(self) -> frozenset[str]:
        """Lower-cased extensions (without dot) recognized as images."""
        formats = self.get("scanning.image_extensions") or []
        return frozenset(f.lower().lstrip(".") for f in formats)

    def resolve_path(self, dotted_key: str, root: str | Path) -> Path:
        """Resolve a configured path; relative values are taken from root."""
        path = Path(str(self.get(dotted_key))).expanduser()
        if not path.is_absolute():
            path = Path(root) / path
        return path

    def reset(self) -> None:
        """Reset config to defaults."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)
