"""
Ingestion Service
Parse flange catalog spreadsheets (CSV / XLSX) and upsert them by natural key
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from openpyxl import load_workbook
from sqlalchemy.orm import Session

from bop_stack.exceptions import CatalogParseError
from bop_stack.logging_config import get_data_quality_logger
from bop_stack.messages import IngestMessages
from bop_stack.models.composite_draft import CompositeDraft
from bop_stack.models.flange_spec import FlangeSpec
from bop_stack.models.part_selection import PartSelection
from bop_stack.models.wrench_setting import WrenchSetting

logger = logging.getLogger(__name__)
dq_logger = get_data_quality_logger()

SUPPORTED_EXTENSIONS = (".csv", ".xlsx")
WRENCH_SHEET_NAME = "size scale"

# Header (lower-cased, trimmed) -> FlangeSpec field
FLANGE_HEADERS: Dict[str, str] = {
    # "Common Flanges" sheet
    "flange size": "flange_size_raw",
    "# of bolts": "bolt_count",
    "size of bolts": "size_of_bolts",
    "wrench": "wrench_no",
    "truck unit psi": "truck_unit_psi",
    "ring needed": "ring_needed",
    "annular pressure": "annular_pressure",
    "single b.o.p (ram)": "single_ram_pressure",
    "double b.o.p (double rams)": "double_rams_pressure",
    "mud cross": "mud_cross_pressure",
    # Column form (database export)
    "flange_size_raw": "flange_size_raw",
    "nominal_bore": "nominal_bore",
    "pressure_class_label": "pressure_class_label",
    "pressure_class_psi": "pressure_class_psi",
    "bolt_count": "bolt_count",
    "size_of_bolts": "size_of_bolts",
    "wrench_no": "wrench_no",
    "truck_unit_psi": "truck_unit_psi",
    "ring_needed": "ring_needed",
    "annular_pressure": "annular_pressure",
    "single_ram_pressure": "single_ram_pressure",
    "double_rams_pressure": "double_rams_pressure",
    "mud_cross_pressure": "mud_cross_pressure",
}

# "Size Scale" sheet header -> WrenchSetting field
WRENCH_HEADERS: Dict[str, str] = {
    "wrench #": "wrench_no",
    "stud diameter (inches)": "stud_diameter",
    "truck unit psi setting": "truck_unit_psi",
    "wrench_no": "wrench_no",
    "stud_diameter": "stud_diameter",
    "truck_unit_psi": "truck_unit_psi",
}

PRESSURE_FIELDS = ("annular_pressure", "single_ram_pressure", "double_rams_pressure", "mud_cross_pressure")
UPDATABLE_FIELDS = (
    "pressure_class_psi",
    "wrench_no",
    "truck_unit_psi",
    "ring_needed",
    "flange_size_raw",
) + PRESSURE_FIELDS


@dataclass
class CatalogParseResult:
    flange_specs: List[dict] = field(default_factory=list)
    wrench_settings: List[dict] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped: int = 0


@dataclass
class ImportSummary:
    total: int = 0
    created: int = 0
    updated: int = 0
    removed: int = 0
    kept: int = 0
    wrench_settings: int = 0
    skipped: int = 0
    warnings: List[str] = field(default_factory=list)


# ============================================================================
# VALUE NORMALIZATION
# ============================================================================


def normalize_text(value) -> str:
    """Trim and collapse internal whitespace; None -> ''."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def normalize_bolt_size(value) -> str:
    """Normalize multiplication signs: '1 x 8', '1×8' -> '1 × 8'."""
    return re.sub(r"\s*[x×]\s*", " × ", normalize_text(value))


def parse_number(value) -> int:
    """
    Spreadsheet cell -> int.

    Blank, '-' and unparsable cells are 0; thousands separators are ignored.

    Example:
        parse_number("5,000")  # 5000
        parse_number("-")      # 0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)

    cleaned = re.sub(r"[,\s]", "", str(value))
    if cleaned in ("", "-"):
        return 0

    match = re.match(r"-?\d+", cleaned)
    return int(match.group()) if match else 0


def parse_flange_size(flange_size: str) -> Tuple[str, str, int]:
    """
    Split a raw flange size into nominal bore, class label and class PSI.

    Example:
        parse_flange_size("13-5/8 5m")  # ("13-5/8", "5M", 5000)

    Raises:
        ValueError: not exactly "<bore> <class>"
    """
    parts = normalize_text(flange_size).split(" ")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid flange size format: {flange_size!r}")

    nominal_bore, label = parts[0], parts[1].upper()
    digits = re.sub(r"\D", "", label)
    psi = int(digits) * 1000 if digits else 0

    return nominal_bore, label, psi


# ============================================================================
# ROW MAPPING
# ============================================================================


def _map_headers(row: dict, aliases: Dict[str, str]) -> dict:
    mapped = {}
    for header, value in row.items():
        key = aliases.get(normalize_text(header).lower())
        if key:
            mapped[key] = value
    return mapped


def build_flange_record(row: dict) -> dict:
    """
    Map one sheet/CSV row to FlangeSpec fields.

    Raises:
        ValueError: missing flange size, bolt size or ring, or a bad flange size
    """
    data = _map_headers(row, FLANGE_HEADERS)

    raw = normalize_text(data.get("flange_size_raw"))
    nominal_bore = normalize_text(data.get("nominal_bore"))
    class_label = normalize_text(data.get("pressure_class_label")).upper()

    if not raw and nominal_bore and class_label:
        raw = f"{nominal_bore} {class_label}"

    size_of_bolts = normalize_bolt_size(data.get("size_of_bolts"))
    ring_needed = normalize_text(data.get("ring_needed")).upper()

    if not raw or not size_of_bolts or not ring_needed:
        raise ValueError("missing flange size, size of bolts or ring needed")

    parsed_bore, parsed_label, parsed_psi = parse_flange_size(raw)

    record = {
        "nominal_bore": nominal_bore or parsed_bore,
        "pressure_class_label": class_label or parsed_label,
        "pressure_class_psi": parse_number(data.get("pressure_class_psi")) or parsed_psi,
        "bolt_count": parse_number(data.get("bolt_count")),
        "size_of_bolts": size_of_bolts,
        "wrench_no": parse_number(data.get("wrench_no")),
        "truck_unit_psi": parse_number(data.get("truck_unit_psi")),
        "ring_needed": ring_needed,
        "flange_size_raw": raw,
    }

    # 0 means "not offered" for the part type
    for name in PRESSURE_FIELDS:
        record[name] = parse_number(data.get(name)) or None

    return record


def build_wrench_record(row: dict) -> Optional[dict]:
    data = _map_headers(row, WRENCH_HEADERS)
    wrench_no = parse_number(data.get("wrench_no"))
    if wrench_no <= 0:
        return None
    return {
        "wrench_no": wrench_no,
        "stud_diameter": normalize_text(data.get("stud_diameter")) or None,
        "truck_unit_psi": parse_number(data.get("truck_unit_psi")),
    }


def _natural_key(record: dict) -> tuple:
    return (
        record["nominal_bore"],
        record["pressure_class_label"],
        record["bolt_count"],
        record["size_of_bolts"],
    )


def process_rows(flange_rows: Iterable[dict], wrench_rows: Iterable[dict] = ()) -> CatalogParseResult:
    """
    Normalize raw rows into flange spec and wrench setting field-sets.

    Bad rows are skipped with a warning. Rows repeating a natural key
    collapse to the last occurrence.
    """
    result = CatalogParseResult()
    by_key: Dict[tuple, dict] = {}

    for line_no, row in enumerate(flange_rows, start=2):
        if not any(normalize_text(v) for v in row.values()):
            continue
        try:
            record = build_flange_record(row)
        except ValueError as e:
            message = f"Skipping row {line_no}: {str(e)}"
            dq_logger.warning(message)
            result.warnings.append(message)
            result.skipped += 1
            continue
        by_key[_natural_key(record)] = record

    result.flange_specs = list(by_key.values())

    wrenches: Dict[int, dict] = {}
    for row in wrench_rows:
        record = build_wrench_record(row)
        if record:
            wrenches[record["wrench_no"]] = record
    result.wrench_settings = list(wrenches.values())

    return result


# ============================================================================
# FILE READING
# ============================================================================


def read_csv_rows(content: bytes) -> List[dict]:
    text = content.decode("utf-8-sig")
    return list(csv.DictReader(io.StringIO(text)))


def _sheet_rows(worksheet) -> List[dict]:
    rows = worksheet.iter_rows(values_only=True)
    headers = None
    records = []
    for values in rows:
        if headers is None:
            if values and any(v is not None and str(v).strip() for v in values):
                headers = [normalize_text(v) for v in values]
            continue
        records.append({h: v for h, v in zip(headers, values) if h})
    return records


def read_xlsx_rows(content: bytes) -> Tuple[List[dict], List[dict]]:
    """
    Read flange rows and (optional) Size Scale rows from a workbook.

    The flange sheet is the one named like "Common Flanges", else the first.
    """
    wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        names = wb.sheetnames
        flange_sheet = next(
            (n for n in names if "common" in n.lower() and "flange" in n.lower()),
            names[0],
        )
        wrench_sheet = next((n for n in names if n.strip().lower() == WRENCH_SHEET_NAME), None)

        logger.debug(f"Reading flange sheet '{flange_sheet}' (wrench sheet: {wrench_sheet})")

        flange_rows = _sheet_rows(wb[flange_sheet])
        wrench_rows = _sheet_rows(wb[wrench_sheet]) if wrench_sheet else []
    finally:
        wb.close()

    return flange_rows, wrench_rows


def parse_catalog_file(filename: str, content: bytes) -> CatalogParseResult:
    """
    Parse an uploaded catalog file.

    Raises:
        CatalogParseError: unsupported type, empty file or no usable rows
    """
    name = (filename or "").lower()
    if not name.endswith(SUPPORTED_EXTENSIONS):
        raise CatalogParseError(IngestMessages.UNSUPPORTED_FILE)

    if not content:
        raise CatalogParseError(IngestMessages.EMPTY_FILE)

    try:
        if name.endswith(".csv"):
            flange_rows, wrench_rows = read_csv_rows(content), []
        else:
            flange_rows, wrench_rows = read_xlsx_rows(content)
    except CatalogParseError:
        raise
    except Exception as e:
        logger.warning(f"Could not read {filename}: {str(e)}")
        raise CatalogParseError(f"Could not read {filename}: {str(e)}") from e

    result = process_rows(flange_rows, wrench_rows)

    if not result.flange_specs:
        raise CatalogParseError(IngestMessages.NO_USABLE_ROWS)

    logger.info(
        f"Parsed {filename}: {len(result.flange_specs)} flange specs, "
        f"{len(result.wrench_settings)} wrench settings, {result.skipped} skipped"
    )

    return result


# ============================================================================
# UPSERT
# ============================================================================


def referenced_spec_ids(db: Session) -> Set[int]:
    """IDs of flange specs used by a stack part or an open adapter spool draft."""
    part_ids = {row[0] for row in db.query(PartSelection.flange_spec_id).distinct()}
    draft_ids = {row[0] for row in db.query(CompositeDraft.side1_spec_id).distinct()}
    return part_ids | draft_ids


def upsert_flange_specs(
    db: Session, records: List[dict], replace: bool = False
) -> Tuple[int, int, int, List[FlangeSpec]]:
    """
    Insert or update flange specs by natural key (no commit).

    With replace=True, specs absent from records are deleted (bulk catalog
    replacement); matching specs keep their IDs. Absent specs that stacks or
    spool drafts still reference are kept and returned instead.

    Returns:
        (created, updated, removed, kept)
    """
    existing = {spec.natural_key: spec for spec in db.query(FlangeSpec).all()}
    created = updated = 0
    seen = set()

    for record in records:
        key = _natural_key(record)
        seen.add(key)
        spec = existing.get(key)
        if spec is None:
            db.add(FlangeSpec(**record))
            created += 1
        else:
            for name in UPDATABLE_FIELDS:
                setattr(spec, name, record[name])
            updated += 1

    removed = 0
    kept = []
    if replace:
        in_use = referenced_spec_ids(db)
        for key, spec in existing.items():
            if key in seen:
                continue
            if spec.id in in_use:
                kept.append(spec)
                continue
            db.delete(spec)
            removed += 1

    db.flush()
    return created, updated, removed, kept


def upsert_wrench_settings(db: Session, records: List[dict], replace: bool = False) -> int:
    existing = {w.wrench_no: w for w in db.query(WrenchSetting).all()}

    for record in records:
        setting = existing.get(record["wrench_no"])
        if setting is None:
            db.add(WrenchSetting(**record))
        else:
            setting.stud_diameter = record["stud_diameter"]
            setting.truck_unit_psi = record["truck_unit_psi"]

    if replace:
        numbers = {r["wrench_no"] for r in records}
        for wrench_no, setting in existing.items():
            if wrench_no not in numbers:
                db.delete(setting)

    db.flush()
    return len(records)


def check_psi_against_wrenches(records: List[dict], wrench_settings: List[dict]) -> List[str]:
    """Warn for rows whose truck PSI differs from their wrench's Size Scale setting."""
    expected = {w["wrench_no"]: w["truck_unit_psi"] for w in wrench_settings}
    warnings = []
    for record in records:
        psi = expected.get(record["wrench_no"])
        if psi and psi != record["truck_unit_psi"]:
            message = (
                f"PSI mismatch for {record['flange_size_raw']}: "
                f"expected {psi}, got {record['truck_unit_psi']}"
            )
            dq_logger.warning(message)
            warnings.append(message)
    return warnings


def import_catalog(
    db: Session,
    parsed: CatalogParseResult,
    replace: bool = False,
) -> Tuple[Optional[ImportSummary], Optional[str]]:
    """
    Store a parsed catalog in one transaction.

    Args:
        db: Database session
        parsed: Result of parse_catalog_file() / process_rows()
        replace: Remove flange specs (and wrench settings, when the file
            has a Size Scale sheet) that are not in the file

    Returns:
        (ImportSummary, error_message)
        If successful: (summary, None)
        If failed: (None, error_message)

    Example:
        parsed = parse_catalog_file("flanges.xlsx", content)
        summary, error = import_catalog(db, parsed, replace=True)
    """
    try:
        created, updated, removed, kept = upsert_flange_specs(db, parsed.flange_specs, replace=replace)

        wrench_count = 0
        if parsed.wrench_settings:
            wrench_count = upsert_wrench_settings(db, parsed.wrench_settings, replace=replace)

        db.commit()

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to import flange catalog: {str(e)}")
        return None, f"Failed to import flange catalog: {str(e)}"

    warnings = list(parsed.warnings)
    warnings.extend(check_psi_against_wrenches(parsed.flange_specs, parsed.wrench_settings))
    for spec in kept:
        message = IngestMessages.SPEC_STILL_IN_USE.format(
            flange_size=spec.flange_size_raw,
            bolt_count=spec.bolt_count,
            bolt_size=spec.size_of_bolts,
        )
        dq_logger.warning(message)
        warnings.append(message)

    summary = ImportSummary(
        total=len(parsed.flange_specs),
        created=created,
        updated=updated,
        removed=removed,
        kept=len(kept),
        wrench_settings=wrench_count,
        skipped=parsed.skipped,
        warnings=warnings,
    )

    logger.info(
        f"✅ Flange catalog imported: {summary.total} specs "
        f"({created} new, {updated} updated, {removed} removed), {wrench_count} wrench settings"
    )

    return summary, None
