"""
Configuration Loader (``wbs_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``wbs_config.schema.EngineSettings``. The public runtime entry point is
``wbs_config.get_engine_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from wbs_config.schema import EngineSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a Decimal from YAML; floats go through ``str``."""
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid decimal for {field_name}: {value!r}") from e


def parse_engine_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from a loaded YAML dict.

    ``engine.default_markup_rate`` and ``config_id`` are required; the rest
    fall back to the schema defaults.
    """
    engine = data["engine"]
    project = data.get("project") or {}
    return EngineSettings(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        default_markup_rate=parse_decimal(
            engine["default_markup_rate"], "engine.default_markup_rate"
        ),
        initial_measurement_number=int(engine.get("initial_measurement_number", 1)),
        default_project_name=str(project.get("default_name", "New Project")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
