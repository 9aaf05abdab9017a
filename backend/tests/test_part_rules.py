"""Part type behavior table."""

import pytest

from bop_stack.utils.part_rules import (
    PART_BEHAVIORS,
    PRESSURE_PART_TYPES,
    PartType,
    SelectionMode,
    display_label,
    get_behavior,
)


class TestBehaviorTable:
    def test_every_part_type_has_a_behavior(self):
        assert set(PART_BEHAVIORS) == set(PartType)

    def test_pressure_parts_name_a_pressure_column(self):
        for behavior in PART_BEHAVIORS.values():
            assert (behavior.pressure_column is not None) == behavior.is_pressure_driven

    def test_pressure_part_types(self):
        assert PRESSURE_PART_TYPES == [
            PartType.ANNULAR,
            PartType.SINGLE_RAM,
            PartType.DOUBLE_RAMS,
            PartType.MUD_CROSS,
        ]

    def test_only_adapter_spool_is_a_spool(self):
        spools = [b.part_type for b in PART_BEHAVIORS.values() if b.is_spool]
        assert spools == [PartType.ADAPTER_SPOOL_SIDE]

    @pytest.mark.parametrize("part_type", ["ANACONDA_LINES", "ROTATING_HEAD"])
    def test_geometry_parts(self, part_type):
        assert get_behavior(part_type).mode == SelectionMode.GEOMETRY


class TestLookup:
    def test_accepts_enum_and_string(self):
        assert get_behavior(PartType.MUD_CROSS) is get_behavior("MUD_CROSS")
        assert get_behavior("MUD_CROSS").pressure_column == "mud_cross_pressure"

    @pytest.mark.parametrize("value", ["", "annular", "BLIND_RAM", None])
    def test_unknown_part_type_is_none(self, value):
        assert get_behavior(value) is None

    def test_display_labels(self):
        assert display_label("SINGLE_RAM") == "Single B.O.P (RAM)"
        assert display_label("DOUBLE_RAMS") == "Double B.O.P (RAMs)"
        assert display_label("ADAPTER_SPOOL_SIDE") == "Adapter Spool"
        assert display_label("SOMETHING_ELSE") == "SOMETHING_ELSE"
