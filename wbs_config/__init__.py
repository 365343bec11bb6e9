"""
wbs_config -- engine settings and project defaults.

Responsibility:
    Provides ``get_engine_settings()`` for the YAML-defined defaults and
    ``new_project()`` which applies them through the kernel factory.

Architecture position:
    Configuration -- sits above ``wbs_kernel``. The kernel and the engines
    MUST NEVER import from ``wbs_config``; settings reach them as explicit
    arguments.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema violations.

Audit relevance:
    Every successful ``get_engine_settings()`` call emits a
    ``WBS_CONFIG_TRACE`` log entry with the config id, version and checksum.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from wbs_config.loader import load_yaml_file, parse_engine_settings
from wbs_config.schema import EngineSettings
from wbs_kernel.domain.project import Project, create_project

_logger = logging.getLogger("wbs_kernel.config")

# Default settings file shipped with the package
DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_engine_settings(config_path: Path | None = None) -> EngineSettings:
    """Load and parse the engine settings (shipped defaults unless a path is given)."""
    path = config_path or DEFAULT_SETTINGS_PATH
    settings = parse_engine_settings(load_yaml_file(path))
    _logger.info(
        "WBS_CONFIG_TRACE",
        extra={
            "trace_type": "WBS_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "default_markup_rate": str(settings.default_markup_rate),
            "path": str(path),
        },
    )
    return settings


def new_project(
    name: str = "",
    *,
    reference_date: date,
    settings: EngineSettings | None = None,
) -> Project:
    """Create an empty project using the configured defaults."""
    settings = settings or get_engine_settings()
    return create_project(
        name or settings.default_project_name,
        markup_rate=settings.default_markup_rate,
        measurement_number=settings.initial_measurement_number,
        reference_date=reference_date,
    )


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "EngineSettings",
    "get_engine_settings",
    "new_project",
]
