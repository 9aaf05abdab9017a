"""
Resolution Service
Progressive narrowing of the flange catalog down to one specification per part
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from bop_stack.exceptions import AmbiguousSelectionError, NoMatchError
from bop_stack.logging_config import get_data_quality_logger
from bop_stack.models.flange_spec import FlangeSpec
from bop_stack.models.wrench_setting import WrenchSetting
from bop_stack.schemas.flange import FlangeFilters, OptionAttribute
from bop_stack.utils.part_rules import PART_BEHAVIORS, get_behavior

logger = logging.getLogger(__name__)
dq_logger = get_data_quality_logger()

# Option attribute -> FlangeSpec column (PRESSURE depends on the part type)
ATTRIBUTE_COLUMNS: Dict[OptionAttribute, str] = {
    OptionAttribute.FLANGE_SIZE: "flange_size_raw",
    OptionAttribute.BOLT_COUNT: "bolt_count",
    OptionAttribute.BOLT_SIZE: "size_of_bolts",
    OptionAttribute.NOMINAL_BORE: "nominal_bore",
    OptionAttribute.PRESSURE_CLASS: "pressure_class_label",
}

# Attributes a caller can still narrow by, in the order they are suggested
NARROWING_ATTRIBUTES: List[OptionAttribute] = [
    OptionAttribute.FLANGE_SIZE,
    OptionAttribute.BOLT_COUNT,
    OptionAttribute.BOLT_SIZE,
    OptionAttribute.NOMINAL_BORE,
    OptionAttribute.PRESSURE_CLASS,
]


class ResolutionStatus(str, enum.Enum):
    RESOLVED = "resolved"
    NO_MATCH = "no_match"
    AMBIGUOUS = "ambiguous"


@dataclass
class Resolution:
    """Result of resolving one part type against accumulated filters"""

    part_type: str
    filters: FlangeFilters
    candidates: List[FlangeSpec]
    varying_attributes: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def status(self) -> ResolutionStatus:
        if not self.candidates:
            return ResolutionStatus.NO_MATCH
        if len(self.candidates) == 1:
            return ResolutionStatus.RESOLVED
        return ResolutionStatus.AMBIGUOUS

    @property
    def is_resolved(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED

    @property
    def flange_spec(self) -> Optional[FlangeSpec]:
        return self.candidates[0] if self.is_resolved else None

    def require_single(self) -> FlangeSpec:
        """
        Return the converged flange spec or raise the matching outcome.

        Raises:
            NoMatchError: zero candidates
            AmbiguousSelectionError: more than one candidate
        """
        status = self.status
        if status == ResolutionStatus.NO_MATCH:
            raise NoMatchError()
        if status == ResolutionStatus.AMBIGUOUS:
            raise AmbiguousSelectionError(
                varying_attributes=self.varying_attributes,
                candidate_count=len(self.candidates),
            )
        return self.candidates[0]


# ============================================================================
# PART TYPES
# ============================================================================


def list_part_types() -> List[dict]:
    """Part type picker entries, in display order."""
    return [
        {"type": behavior.part_type.value, "label": behavior.label, "category": behavior.mode.value}
        for behavior in PART_BEHAVIORS.values()
    ]


# ============================================================================
# PRESSURE OPTIONS
# ============================================================================


def get_pressure_options(db: Session, part_type: str) -> List[int]:
    """
    Get the rated pressures offered for a part type.

    Computed over the whole catalog (this is the first question asked, so
    no other filter applies). Only strictly positive values are offered.

    Args:
        db: Database session
        part_type: PartType value

    Returns:
        Ascending distinct pressures; [] for geometry-driven, spool or
        unknown part types

    Example:
        get_pressure_options(db, "ANNULAR")  # [3000, 5000, 10000]
    """
    behavior = get_behavior(part_type)

    if behavior is None or not behavior.is_pressure_driven:
        return []

    column = getattr(FlangeSpec, behavior.pressure_column)
    rows = (
        db.query(column)
        .filter(column.isnot(None), column > 0)
        .distinct()
        .order_by(column.asc())
        .all()
    )

    return [row[0] for row in rows]


# ============================================================================
# CANDIDATE FILTERING
# ============================================================================


def filter_flange_specs(
    db: Session,
    part_type: str,
    filters: Optional[FlangeFilters] = None,
) -> List[FlangeSpec]:
    """
    Get the flange specs consistent with a part type and its filters.

    The part type constraint applies first: pressure-driven parts keep rows
    whose pressure column equals the chosen pressure (or holds a positive
    value when no pressure was chosen yet). Geometry-driven parts and spool sides accept
    every row. The remaining filters are strict equality conjunctions.

    Args:
        db: Database session
        part_type: PartType value
        filters: Filters chosen so far (all optional)

    Returns:
        Matching specs sorted by raw flange size; [] for unknown part types
        or when the filters over-constrain
    """
    filters = filters or FlangeFilters()
    behavior = get_behavior(part_type)

    if behavior is None:
        logger.debug(f"Unknown part type requested: {part_type}")
        return []

    query = db.query(FlangeSpec)

    if behavior.is_pressure_driven:
        column = getattr(FlangeSpec, behavior.pressure_column)
        if filters.pressure is not None:
            query = query.filter(column == filters.pressure)
        else:
            # 0 means "not offered", same as NULL
            query = query.filter(column.isnot(None), column > 0)

    if filters.flange_size:
        query = query.filter(FlangeSpec.flange_size_raw == filters.flange_size)

    if filters.bolt_count is not None:
        query = query.filter(FlangeSpec.bolt_count == filters.bolt_count)

    if filters.bolt_size:
        query = query.filter(FlangeSpec.size_of_bolts == filters.bolt_size)

    if filters.nominal_bore:
        query = query.filter(FlangeSpec.nominal_bore == filters.nominal_bore)

    if filters.pressure_class:
        query = query.filter(FlangeSpec.pressure_class_label == filters.pressure_class)

    specs = query.order_by(FlangeSpec.flange_size_raw.asc(), FlangeSpec.id.asc()).all()

    logger.debug(f"{part_type} {filters.model_dump(exclude_none=True)} -> {len(specs)} candidates")

    return specs


def get_dependent_options(
    db: Session,
    part_type: str,
    filters: Optional[FlangeFilters],
    attribute: OptionAttribute,
) -> list:
    """
    Get the values of one attribute still available under the current filters.

    Always derived from filter_flange_specs() with the filters chosen so
    far, never from the whole catalog, so any offered value keeps the
    candidate set non-empty when applied next.

    Args:
        db: Database session
        part_type: PartType value
        filters: Filters chosen so far
        attribute: Attribute to project

    Returns:
        Ascending distinct values
    """
    attribute = OptionAttribute(attribute)
    behavior = get_behavior(part_type)

    if behavior is None:
        return []

    if attribute == OptionAttribute.PRESSURE:
        if not behavior.is_pressure_driven:
            return []
        column = behavior.pressure_column
    else:
        column = ATTRIBUTE_COLUMNS[attribute]

    candidates = filter_flange_specs(db, part_type, filters)

    values = {getattr(spec, column) for spec in candidates}
    values.discard(None)

    if attribute == OptionAttribute.PRESSURE:
        values = {value for value in values if value > 0}

    return sorted(values)


def get_varying_attributes(candidates: List[FlangeSpec]) -> List[str]:
    """Narrowing attributes with more than one distinct value among candidates."""
    varying = []
    for attribute in NARROWING_ATTRIBUTES:
        column = ATTRIBUTE_COLUMNS[attribute]
        if len({getattr(spec, column) for spec in candidates}) > 1:
            varying.append(attribute.value)
    return varying


# ============================================================================
# WRENCH CROSS-CHECK
# ============================================================================


def check_wrench_settings(db: Session, candidates: List[FlangeSpec]) -> List[str]:
    """
    Compare candidates' truck unit PSI with the Size Scale wrench table.

    Advisory only: mismatches are logged as data-quality warnings and
    returned, candidates are never removed.

    Returns:
        One warning message per mismatching candidate
    """
    wrench_numbers = {spec.wrench_no for spec in candidates if spec.wrench_no and spec.wrench_no > 0}

    if not wrench_numbers:
        return []

    expected_psi = dict(
        db.query(WrenchSetting.wrench_no, WrenchSetting.truck_unit_psi)
        .filter(WrenchSetting.wrench_no.in_(wrench_numbers))
        .all()
    )

    warnings = []
    for spec in candidates:
        expected = expected_psi.get(spec.wrench_no)
        if expected is not None and expected != spec.truck_unit_psi:
            message = (
                f"PSI mismatch for {spec.flange_size_raw} ({spec.bolt_count} x {spec.size_of_bolts}): "
                f"wrench #{spec.wrench_no} expects {expected}, catalog has {spec.truck_unit_psi}"
            )
            dq_logger.warning(message)
            warnings.append(message)

    return warnings


# ============================================================================
# CONVERGENCE
# ============================================================================


def resolve(
    db: Session,
    part_type: str,
    filters: Optional[FlangeFilters] = None,
) -> Resolution:
    """
    Resolve a part type + filters to its convergence state.

    Args:
        db: Database session
        part_type: PartType value
        filters: Filters chosen so far

    Returns:
        Resolution (resolved / no_match / ambiguous with varying attributes)

    Example:
        resolution = resolve(db, "ANNULAR", FlangeFilters(pressure=5000, bolt_count=16))
        if resolution.is_resolved:
            spec = resolution.flange_spec
    """
    filters = filters or FlangeFilters()
    candidates = filter_flange_specs(db, part_type, filters)

    resolution = Resolution(
        part_type=getattr(part_type, "value", part_type),
        filters=filters,
        candidates=candidates,
        warnings=check_wrench_settings(db, candidates),
    )

    if resolution.status == ResolutionStatus.AMBIGUOUS:
        resolution.varying_attributes = get_varying_attributes(candidates)

    return resolution
