"""
Engine settings schema.

YAML fragments are parsed into these frozen types by the loader. The
engines never read them directly; callers pass the values they need
(markup rate, measurement number) as explicit arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class EngineSettings:
    """Defaults applied when a new project is created."""

    config_id: str
    version: int
    default_markup_rate: Decimal
    initial_measurement_number: int = 1
    default_project_name: str = "New Project"
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.default_markup_rate < Decimal("0"):
            raise ValueError(
                f"default_markup_rate cannot be negative: {self.default_markup_rate}"
            )
        if self.initial_measurement_number < 1:
            raise ValueError(
                "initial_measurement_number must be at least 1, got "
                f"{self.initial_measurement_number}"
            )
