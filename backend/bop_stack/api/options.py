"""
Options Routes
Read-only catalog queries that drive the part configuration form
GET /api/options/parts - Part types with labels and selection mode
GET /api/options/pressures?part= - Rated pressures for a pressure-driven part
GET /api/options/flanges?part=&... - Candidate flange specs for the filters so far
GET /api/options/values?part=&attribute=&... - Next options for one attribute
GET /api/options/resolve?part=&... - Whether the filters converge
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bop_stack.db.database import get_db
from bop_stack.dependencies import get_flange_filters
from bop_stack.schemas.flange import (
    CandidatesResponse,
    FlangeFilters,
    FlangeSpecResponse,
    OptionAttribute,
    OptionValuesResponse,
    PartTypeOption,
    ResolutionResponse,
)
from bop_stack.services.resolution_service import (
    check_wrench_settings,
    filter_flange_specs,
    get_dependent_options,
    get_pressure_options,
    list_part_types,
    resolve,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/parts",
    response_model=List[PartTypeOption],
    status_code=status.HTTP_200_OK,
    summary="List part types",
)
async def list_parts() -> List[PartTypeOption]:
    return [PartTypeOption(**entry) for entry in list_part_types()]


@router.get(
    "/pressures",
    response_model=List[int],
    status_code=status.HTTP_200_OK,
    summary="List rated pressures",
    description="Distinct positive pressures offered for a pressure-driven part type (empty otherwise)",
)
async def list_pressures(
    part: str = Query(..., description="Part type, e.g. ANNULAR"),
    db: Session = Depends(get_db),
) -> List[int]:
    """
    Example:
        GET /api/options/pressures?part=ANNULAR
        [3000, 5000, 10000]
    """
    return get_pressure_options(db, part)


@router.get(
    "/flanges",
    response_model=CandidatesResponse,
    status_code=status.HTTP_200_OK,
    summary="List candidate flange specs",
)
async def list_flanges(
    part: str = Query(..., description="Part type"),
    filters: FlangeFilters = Depends(get_flange_filters),
    db: Session = Depends(get_db),
) -> CandidatesResponse:
    """
    Candidate flange specs for a part type and the filters chosen so far.

    An over-constrained or unknown part type gives an empty list, not an error.

    Example:
        GET /api/options/flanges?part=ANNULAR&pressure=5000
    """
    candidates = filter_flange_specs(db, part, filters)

    return CandidatesResponse(
        candidates=[FlangeSpecResponse.model_validate(spec) for spec in candidates],
        total=len(candidates),
        warnings=check_wrench_settings(db, candidates),
    )


@router.get(
    "/values",
    response_model=OptionValuesResponse,
    status_code=status.HTTP_200_OK,
    summary="List next option values",
    description="Distinct values of one attribute among the current candidates",
)
async def list_values(
    part: str = Query(..., description="Part type"),
    attribute: OptionAttribute = Query(..., description="Attribute to list"),
    filters: FlangeFilters = Depends(get_flange_filters),
    db: Session = Depends(get_db),
) -> OptionValuesResponse:
    """
    Example:
        GET /api/options/values?part=ANNULAR&pressure=5000&attribute=bolt_count
        {"attribute": "bolt_count", "values": [12, 16]}
    """
    values = get_dependent_options(db, part, filters, attribute)
    return OptionValuesResponse(attribute=attribute, values=values)


@router.get(
    "/resolve",
    response_model=ResolutionResponse,
    status_code=status.HTTP_200_OK,
    summary="Check convergence",
)
async def check_resolution(
    part: str = Query(..., description="Part type"),
    filters: FlangeFilters = Depends(get_flange_filters),
    db: Session = Depends(get_db),
) -> ResolutionResponse:
    """
    Report whether the filters converge to a single flange spec.

    Ambiguous results list the attributes that still vary, so the client
    knows which question to ask next.
    """
    resolution = resolve(db, part, filters)

    return ResolutionResponse(
        status=resolution.status.value,
        candidate_count=len(resolution.candidates),
        flange_spec=(
            FlangeSpecResponse.model_validate(resolution.flange_spec) if resolution.is_resolved else None
        ),
        varying_attributes=resolution.varying_attributes,
        warnings=resolution.warnings,
    )
