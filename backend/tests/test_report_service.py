"""Report formatter: lines, spool lettering, summary and PDF exports."""

import os

import pytest

from bop_stack.exceptions import NotFoundError
from bop_stack.models import PartSelection
from bop_stack.schemas.flange import FlangeFilters
from bop_stack.services.report_service import (
    build_report_lines,
    export_report,
    format_part_line,
    generate_report,
    get_report,
    get_report_file_path,
    spool_letter,
    summarize,
)
from bop_stack.services.stack_service import (
    add_part_to_stack,
    complete_composite_side_2,
    create_stack,
    delete_stack,
    start_composite_side_1,
)

ANNULAR_A = FlangeFilters(pressure=5000, flange_size="13-5/8 5M", bolt_count=8)
SPEC_D = FlangeFilters(flange_size="13-5/8 10M")
SPEC_F = FlangeFilters(flange_size="7-1/16 3M")


@pytest.fixture
def stack(db, catalog):
    return create_stack(db, "Rig 12")


def add_spool(db, stack_id, side1=SPEC_F, side2=SPEC_D):
    draft = start_composite_side_1(db, stack_id, side1)
    return complete_composite_side_2(db, stack_id, draft.group_id, side2)


# =============================================================================
# SPOOL LETTERS
# =============================================================================

class TestSpoolLetter:
    @pytest.mark.parametrize("index, letter", [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA")])
    def test_letters(self, index, letter):
        assert spool_letter(index) == letter


# =============================================================================
# LINES
# =============================================================================

class TestReportLines:
    def test_part_and_spool(self, db, stack):
        add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        add_spool(db, stack.id)

        texts = generate_report(db, stack.id).texts

        assert len(texts) == 3
        assert "Pressure 5000" in texts[0]
        assert texts[1].startswith("Adapter Spool A — Side 1")
        assert texts[2].startswith("Adapter Spool A — Side 2")
        assert all("Pressure" not in text for text in texts[1:])

    def test_exact_part_line(self, db, stack):
        add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        assert generate_report(db, stack.id).texts == [
            "Annular – Pressure 5000 – Ring: BX-160 | Size of Bolts: 1-1/8 | # Bolts: 8 | "
            "Flange: 13-5/8 5M | Wrench Required: 4 | Set Truck PSI to: 5600"
        ]

    def test_exact_spool_lines(self, db, stack):
        add_spool(db, stack.id)
        assert generate_report(db, stack.id).texts == [
            "Adapter Spool A — Side 1 – Ring: R-45 | Size of Bolts: 1-1/8 | # Bolts: 8 | "
            "Flange: 7-1/16 3M | Wrench Required: 0 | Set Truck PSI to: 0",
            "Adapter Spool A — Side 2 – Ring: BX-159 | Size of Bolts: 1-7/8 | # Bolts: 20 | "
            "Flange: 13-5/8 10M | Wrench Required: 5 | Set Truck PSI to: 7000",
        ]

    def test_geometry_part_has_no_pressure_segment(self, db, stack):
        add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_D)
        assert generate_report(db, stack.id).texts[0].startswith("Rotating Head – Ring: BX-159")

    def test_stray_pressure_on_geometry_part_is_not_printed(self, catalog):
        part = PartSelection(part_type="ANACONDA_LINES", pressure_value=5000, flange_spec=catalog["C"])
        assert format_part_line(part).startswith("Anaconda Lines – Ring: R-54")

    def test_singles_come_before_spools(self, db, stack):
        add_spool(db, stack.id)
        add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_F)
        add_spool(db, stack.id, SPEC_D, SPEC_D)
        add_part_to_stack(db, stack.id, "MUD_CROSS", FlangeFilters(pressure=10000))

        texts = generate_report(db, stack.id).texts

        assert texts[0].startswith("Rotating Head")
        assert texts[1].startswith("Mud Cross – Pressure 10000")
        assert [t.split(" –")[0] for t in texts[2:]] == [
            "Adapter Spool A — Side 1",
            "Adapter Spool A — Side 2",
            "Adapter Spool B — Side 1",
            "Adapter Spool B — Side 2",
        ]
        assert "Flange: 7-1/16 3M" in texts[2]
        assert "Flange: 13-5/8 10M" in texts[4]

    def test_singles_follow_stack_order(self, db, stack):
        first = add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        second = add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_D)
        lines = build_report_lines([second, first])
        assert lines[0].text.startswith("Rotating Head")
        assert not any(line.is_spool for line in lines)

    def test_empty_stack(self, db, stack):
        document = generate_report(db, stack.id)
        assert document.lines == []
        assert document.summary.total_parts == 0
        assert document.summary.pressure_range == "N/A"
        assert document.summary.flange_classes == "N/A"

    def test_missing_stack(self, db):
        with pytest.raises(NotFoundError):
            generate_report(db, 404)


# =============================================================================
# SUMMARY
# =============================================================================

class TestSummary:
    def test_range_and_classes(self, db, stack):
        add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        add_part_to_stack(db, stack.id, "DOUBLE_RAMS", SPEC_D)
        add_spool(db, stack.id)

        summary = generate_report(db, stack.id).summary

        assert summary.total_parts == 4
        assert summary.pressure_range == "5000-10000 PSI"
        assert summary.flange_classes == "10M, 3M, 5M"

    def test_single_pressure(self, db, stack):
        add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        add_part_to_stack(db, stack.id, "SINGLE_RAM", FlangeFilters(pressure=5000))
        assert generate_report(db, stack.id).summary.pressure_range == "5000 PSI"

    def test_geometry_only_stack_has_no_pressure_range(self, db, stack):
        add_part_to_stack(db, stack.id, "ROTATING_HEAD", SPEC_F)
        summary = generate_report(db, stack.id).summary
        assert summary.pressure_range == "N/A"
        assert summary.flange_classes == "3M"

    def test_summarize_nothing(self):
        assert summarize([]).total_parts == 0


# =============================================================================
# EXPORTS
# =============================================================================

class TestExport:
    def test_export_writes_pdf(self, db, stack, reports_dir):
        add_part_to_stack(db, stack.id, "ANNULAR", ANNULAR_A)
        add_spool(db, stack.id)

        report = export_report(db, stack.id)

        assert report.line_count == 3
        path = get_report_file_path(db, report.id)
        assert os.path.dirname(path) == str(reports_dir)
        with open(path, "rb") as f:
            assert f.read(4) == b"%PDF"

    def test_export_of_empty_stack(self, db, stack, reports_dir):
        report = export_report(db, stack.id)
        assert report.line_count == 0
        assert os.path.isfile(get_report_file_path(db, report.id))

    def test_unknown_report(self, db):
        with pytest.raises(NotFoundError):
            get_report(db, 77)

    def test_file_gone_from_disk(self, db, stack, reports_dir):
        report = export_report(db, stack.id)
        os.remove(get_report_file_path(db, report.id))
        with pytest.raises(NotFoundError):
            get_report_file_path(db, report.id)

    def test_deleting_stack_removes_its_files(self, db, stack, reports_dir):
        report = export_report(db, stack.id)
        path = get_report_file_path(db, report.id)

        delete_stack(db, stack.id)

        assert not os.path.exists(path)
        with pytest.raises(NotFoundError):
            get_report(db, report.id)
