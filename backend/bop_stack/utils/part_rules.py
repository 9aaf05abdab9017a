"""
Part Rules
Closed set of stack part types and how each one is selected from the flange catalog
"""

import enum
from dataclasses import dataclass
from typing import Dict, List, Optional


class PartType(str, enum.Enum):
    ANNULAR = "ANNULAR"
    SINGLE_RAM = "SINGLE_RAM"
    DOUBLE_RAMS = "DOUBLE_RAMS"
    MUD_CROSS = "MUD_CROSS"
    ANACONDA_LINES = "ANACONDA_LINES"
    ROTATING_HEAD = "ROTATING_HEAD"
    ADAPTER_SPOOL_SIDE = "ADAPTER_SPOOL_SIDE"


class SelectionMode(str, enum.Enum):
    PRESSURE = "pressure"  # narrowed first by a rated pressure, carries it
    GEOMETRY = "geometry"  # narrowed by flange geometry only
    SPOOL = "spool"  # one side of a two-sided adapter spool


@dataclass(frozen=True)
class PartBehavior:
    """How one part type is resolved against the catalog"""

    part_type: PartType
    label: str
    mode: SelectionMode
    pressure_column: Optional[str] = None

    @property
    def is_pressure_driven(self) -> bool:
        return self.mode == SelectionMode.PRESSURE

    @property
    def is_spool(self) -> bool:
        return self.mode == SelectionMode.SPOOL


PART_BEHAVIORS: Dict[PartType, PartBehavior] = {
    PartType.ANNULAR: PartBehavior(
        PartType.ANNULAR, "Annular", SelectionMode.PRESSURE, "annular_pressure"
    ),
    PartType.SINGLE_RAM: PartBehavior(
        PartType.SINGLE_RAM, "Single B.O.P (RAM)", SelectionMode.PRESSURE, "single_ram_pressure"
    ),
    PartType.DOUBLE_RAMS: PartBehavior(
        PartType.DOUBLE_RAMS, "Double B.O.P (RAMs)", SelectionMode.PRESSURE, "double_rams_pressure"
    ),
    PartType.MUD_CROSS: PartBehavior(
        PartType.MUD_CROSS, "Mud Cross", SelectionMode.PRESSURE, "mud_cross_pressure"
    ),
    PartType.ANACONDA_LINES: PartBehavior(
        PartType.ANACONDA_LINES, "Anaconda Lines", SelectionMode.GEOMETRY
    ),
    PartType.ROTATING_HEAD: PartBehavior(
        PartType.ROTATING_HEAD, "Rotating Head", SelectionMode.GEOMETRY
    ),
    PartType.ADAPTER_SPOOL_SIDE: PartBehavior(
        PartType.ADAPTER_SPOOL_SIDE, "Adapter Spool", SelectionMode.SPOOL
    ),
}

PRESSURE_PART_TYPES: List[PartType] = [
    behavior.part_type for behavior in PART_BEHAVIORS.values() if behavior.is_pressure_driven
]


def get_behavior(part_type) -> Optional[PartBehavior]:
    """
    Look up the behavior for a part type.

    Accepts a PartType or its string value. Returns None for anything
    outside the closed set, so callers can fail closed.

    Example:
        behavior = get_behavior("ANNULAR")
        behavior.pressure_column  # "annular_pressure"
    """
    try:
        return PART_BEHAVIORS[PartType(part_type)]
    except ValueError:
        return None


def display_label(part_type) -> str:
    behavior = get_behavior(part_type)
    return behavior.label if behavior else str(part_type)
