"""Configuration management with YAML and JSON support."""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from zxytiles.core.errors import ConfigurationError
from zxytiles.core.models import TilerConfig

_INT_KEYS = ("max_zoom", "tile_size", "png_compression_level")
_FLOAT_KEYS = ("poll_interval", "timeout_seconds")
_BOOL_STRINGS = {"true": True, "yes": True, "on": True, "false": False, "no": False, "off": False}


class ConfigLoader:
    """Load tiler defaults from YAML or JSON files."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path.cwd()

    def load(self, path: Path | str) -> TilerConfig:
        """Parse a configuration file and return a populated dataclass."""

        config_path = self._resolve_path(Path(path))
        if not config_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        payload = self._load_payload(config_path)
        return self._build_config(payload)

    def _resolve_path(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self._base_dir / path).resolve()

    def _load_payload(self, path: Path) -> Dict[str, Any]:
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    payload = yaml.safe_load(handle) or {}
                elif suffix == ".json":
                    payload = json.load(handle) or {}
                else:
                    raise ConfigurationError(f"Unsupported configuration format: {suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Invalid configuration file {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigurationError("configuration root must be a mapping")
        # Allow the settings to live under a top-level ``tiles`` section.
        section = payload.get("tiles", payload)
        if not isinstance(section, dict):
            raise ConfigurationError("tiles section must be a mapping")
        return section

    def _build_config(self, payload: Dict[str, Any]) -> TilerConfig:
        known = {item.name for item in fields(TilerConfig)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        data = dict(payload)
        try:
            for key in _INT_KEYS:
                if key in data and data[key] is not None:
                    data[key] = int(data[key])
            for key in _FLOAT_KEYS:
                if key in data and data[key] is not None:
                    data[key] = float(data[key])
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid configuration value: {exc}") from exc
        if "timestamp" in data:
            data["timestamp"] = _parse_bool("timestamp", data["timestamp"])
        if "tile_format" in data:
            data["tile_format"] = str(data["tile_format"]).lower()
        if data.get("poll_interval") is not None and data["poll_interval"] <= 0:
            raise ConfigurationError(f"poll_interval must be positive, got {data['poll_interval']}")
        if data.get("timeout_seconds") is not None and data["timeout_seconds"] <= 0:
            raise ConfigurationError(f"timeout_seconds must be positive, got {data['timeout_seconds']}")
        return TilerConfig(**data)


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOL_STRINGS:
        return _BOOL_STRINGS[value.strip().lower()]
    raise ConfigurationError(f"{key} must be true or false, got {value!r}")


def load_config(path: Path | str, *, base_dir: Optional[Path] = None) -> TilerConfig:
    """Convenience wrapper around :class:`ConfigLoader`."""

    loader = ConfigLoader(base_dir=base_dir)
    return loader.load(path)
