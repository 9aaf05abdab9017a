"""
Report Service
Formats an ordered stack into report lines + summary, and persists rendered PDFs
"""

import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from bop_stack.config import settings
from bop_stack.exceptions import NotFoundError
from bop_stack.messages import ReportMessages
from bop_stack.models.flange_spec import FlangeSpec
from bop_stack.models.part_selection import PartSelection
from bop_stack.models.report_export import ReportExport
from bop_stack.services.stack_service import get_stack_with_parts
from bop_stack.utils.part_rules import PART_BEHAVIORS, PartType, display_label, get_behavior
from bop_stack.utils.pdf_renderer import render_report_pdf

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
SPOOL_LABEL = PART_BEHAVIORS[PartType.ADAPTER_SPOOL_SIDE].label


@dataclass
class ReportLine:
    text: str
    is_spool: bool = False


@dataclass
class ReportSummary:
    total_parts: int
    pressure_range: str
    flange_classes: str


@dataclass
class ReportDocument:
    """Everything the renderer needs: ordered lines plus summary metadata"""

    stack_id: int
    title: str
    generated_at: datetime
    lines: List[ReportLine] = field(default_factory=list)
    summary: Optional[ReportSummary] = None

    @property
    def texts(self) -> List[str]:
        return [line.text for line in self.lines]


# ============================================================================
# LINE FORMATTING
# ============================================================================


def spool_letter(index: int) -> str:
    """
    Letter for the index-th adapter spool group (0 -> A, 25 -> Z, 26 -> AA).
    """
    letters = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def _flange_fields(spec: FlangeSpec) -> str:
    return (
        f"Ring: {spec.ring_needed} | Size of Bolts: {spec.size_of_bolts} | "
        f"# Bolts: {spec.bolt_count} | Flange: {spec.flange_size_raw} | "
        f"Wrench Required: {spec.wrench_no} | Set Truck PSI to: {spec.truck_unit_psi}"
    )


def format_part_line(part: PartSelection) -> str:
    """Line for a single (non-spool) part."""
    name = display_label(part.part_type)

    behavior = get_behavior(part.part_type)
    # A stray pressure on a geometry part is never printed
    if behavior is not None and behavior.is_pressure_driven and part.pressure_value:
        name = f"{name} – Pressure {part.pressure_value}"

    return f"{name} – {_flange_fields(part.flange_spec)}"


def format_spool_line(letter: str, side_number: int, part: PartSelection) -> str:
    return f"{SPOOL_LABEL} {letter} — Side {side_number} – {_flange_fields(part.flange_spec)}"


def _side_sort_key(part: PartSelection):
    return (part.created_at or datetime.min, part.id or 0)


def build_report_lines(parts: List[PartSelection]) -> List[ReportLine]:
    """
    Turn stack-ordered parts into report lines.

    Single parts come first in stack order. Adapter spools follow, one letter
    per group in the order groups are first met in the stack, each group's
    sides ordered by creation (earliest is side 1).
    """
    singles: List[PartSelection] = []
    spool_groups: Dict[str, List[PartSelection]] = {}

    for part in parts:
        if part.part_type == PartType.ADAPTER_SPOOL_SIDE.value and part.spool_group_id:
            spool_groups.setdefault(part.spool_group_id, []).append(part)
        else:
            singles.append(part)

    lines = [ReportLine(format_part_line(part)) for part in singles]

    for index, sides in enumerate(spool_groups.values()):
        letter = spool_letter(index)
        for side_number, side in enumerate(sorted(sides, key=_side_sort_key), start=1):
            lines.append(ReportLine(format_spool_line(letter, side_number, side), is_spool=True))

    return lines


# ============================================================================
# SUMMARY
# ============================================================================


def format_pressure_range(parts: List[PartSelection]) -> str:
    pressures = [p.pressure_value for p in parts if p.pressure_value and p.pressure_value > 0]

    if not pressures:
        return NOT_AVAILABLE

    low, high = min(pressures), max(pressures)
    return f"{low} PSI" if low == high else f"{low}-{high} PSI"


def format_flange_classes(parts: List[PartSelection]) -> str:
    classes = sorted({p.flange_spec.pressure_class_label for p in parts if p.flange_spec})
    return ", ".join(classes) or NOT_AVAILABLE


def summarize(parts: List[PartSelection]) -> ReportSummary:
    return ReportSummary(
        total_parts=len(parts),
        pressure_range=format_pressure_range(parts),
        flange_classes=format_flange_classes(parts),
    )


# ============================================================================
# GENERATE
# ============================================================================


def generate_report(db: Session, stack_id: int) -> ReportDocument:
    """
    Build the report document for a stack (nothing is stored).

    Args:
        db: Database session
        stack_id: Stack ID

    Returns:
        ReportDocument with lines and summary

    Raises:
        NotFoundError: stack doesn't exist
        DataIntegrityError: a part's flange spec is missing

    Example:
        document = generate_report(db, stack_id=1)
        for text in document.texts:
            print(text)
    """
    stack, parts = get_stack_with_parts(db, stack_id)

    document = ReportDocument(
        stack_id=stack.id,
        title=stack.title,
        generated_at=datetime.utcnow(),
        lines=build_report_lines(parts),
        summary=summarize(parts),
    )

    logger.debug(f"Report for stack {stack_id}: {len(document.lines)} lines")

    return document


# ============================================================================
# EXPORT / DOWNLOAD
# ============================================================================


def export_report(db: Session, stack_id: int) -> ReportExport:
    """
    Render a stack's report to PDF and record the export.

    The file is written to settings.REPORTS_DIR as {uuid}.pdf; the stored
    pdf_path is relative to that directory.

    Returns:
        Created ReportExport

    Raises:
        NotFoundError: stack doesn't exist
        DataIntegrityError: a part's flange spec is missing
    """
    document = generate_report(db, stack_id)
    pdf_bytes = render_report_pdf(document)

    os.makedirs(settings.REPORTS_DIR, exist_ok=True)
    file_name = f"{uuid.uuid4()}.pdf"
    full_path = os.path.join(settings.REPORTS_DIR, file_name)

    with open(full_path, "wb") as f:
        f.write(pdf_bytes)

    report = ReportExport(stack_id=stack_id, pdf_path=file_name, line_count=len(document.lines))

    try:
        db.add(report)
        db.commit()
        db.refresh(report)
    except Exception as e:
        db.rollback()
        os.remove(full_path)
        logger.error(f"Failed to record report for stack {stack_id}: {str(e)}")
        raise

    logger.info(f"✅ Report {report.id} generated for stack {stack_id} ({len(pdf_bytes)} bytes)")

    return report


def get_report(db: Session, report_id: int) -> ReportExport:
    """
    Get a report export by ID.

    Raises:
        NotFoundError: no such report
    """
    report = db.query(ReportExport).filter(ReportExport.id == report_id).first()

    if report is None:
        raise NotFoundError(ReportMessages.REPORT_NOT_FOUND.format(report_id=report_id))

    return report


def get_report_file_path(db: Session, report_id: int) -> str:
    """
    Absolute-or-relative path of a report's PDF on disk.

    Raises:
        NotFoundError: no such report, or its file is gone
    """
    report = get_report(db, report_id)
    full_path = os.path.join(settings.REPORTS_DIR, report.pdf_path or "")

    if not report.pdf_path or not os.path.isfile(full_path):
        logger.warning(f"Report {report_id} file missing: {full_path}")
        raise NotFoundError(ReportMessages.REPORT_FILE_MISSING.format(report_id=report_id))

    return full_path
