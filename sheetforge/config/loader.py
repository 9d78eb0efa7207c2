from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Pipeline configuration loader.

Responsibilities:
- Load an optional YAML config file
- Validate it against the bundled config_schema.json
- Apply defaults (50 MiB ceiling, A4 portrait layout, 8 rendered columns)
"""

__all__ = [
    "ConfigError",
    "RenderConfig",
    "ArchiveConfig",
    "PipelineConfig",
    "load_config",
    "SCHEMA_PATH",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

MIB = 1024 * 1024


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class RenderConfig:
    """Page layout for per-sheet documents. Lengths are in millimetres."""
    page_size: str = "A4"
    margin_mm: float = 10
    line_height_mm: float = 6
    title_font_size: float = 16
    body_font_size: float = 10
    font_name: str = "Helvetica"
    max_columns: int = 8
    cell_text_limit: int = 15


@dataclass(frozen=True)
class ArchiveConfig:
    compression: str = "deflated"  # deflated | stored


@dataclass(frozen=True)
class PipelineConfig:
    max_file_size_mb: float = 50
    render: RenderConfig = field(default_factory=RenderConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * MIB)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the
            config data violates it (unknown keys, wrong types, bad enums).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path | None = None) -> PipelineConfig:
    """Load the pipeline config from ``path``; ``None`` yields the defaults."""
    if path is None:
        return PipelineConfig()
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config validation failed: top level must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    defaults = PipelineConfig()
    render = RenderConfig(**data.get("render", {}))
    archive = ArchiveConfig(**data.get("archive", {}))
    return PipelineConfig(
        max_file_size_mb=data.get("max_file_size_mb", defaults.max_file_size_mb),
        render=render,
        archive=archive,
    )
