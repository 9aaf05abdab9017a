"""
Flange Schemas
Pydantic models for catalog filters, option lists and resolution results
"""

import enum
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Union


# ============================================================================
# FILTERS (What the client narrows by)
# ============================================================================


class OptionAttribute(str, enum.Enum):
    """Attributes whose live option values can be listed"""
    FLANGE_SIZE = "flange_size"
    BOLT_COUNT = "bolt_count"
    BOLT_SIZE = "bolt_size"
    NOMINAL_BORE = "nominal_bore"
    PRESSURE_CLASS = "pressure_class"
    PRESSURE = "pressure"


class FlangeFilters(BaseModel):
    """Accumulated narrowing criteria for one part selection"""

    pressure: Optional[int] = Field(None, gt=0, description="Rated pressure (pressure-driven parts only)")
    """Target pressure, matched against the part type's pressure column"""

    flange_size: Optional[str] = Field(None, description="Raw flange size label, e.g. '13-5/8 5M'")
    """Matched against flange_size_raw"""

    bolt_count: Optional[int] = Field(None, ge=1)
    """Number of bolts"""

    bolt_size: Optional[str] = None
    """Matched against size_of_bolts"""

    nominal_bore: Optional[str] = None
    """Nominal bore, e.g. '13-5/8'"""

    pressure_class: Optional[str] = None
    """Pressure class label, e.g. '5M'"""

    @field_validator("flange_size", "bolt_size", "nominal_bore", "pressure_class", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    class Config:
        example = {
            "pressure": 5000,
            "flange_size": "13-5/8 5M",
            "bolt_count": 16,
        }


class SpoolSideRequest(BaseModel):
    """Filters for one adapter spool side"""

    filters: FlangeFilters = Field(default_factory=FlangeFilters)


class AddPartRequest(BaseModel):
    """Finalize a single part selection and append it to the stack"""

    part_type: str = Field(..., min_length=1, max_length=30)
    """One of the PartType values (adapter spools use the spool endpoints)"""

    filters: FlangeFilters = Field(default_factory=FlangeFilters)

    class Config:
        example = {
            "part_type": "ANNULAR",
            "filters": {"pressure": 5000, "flange_size": "13-5/8 5M", "bolt_count": 16},
        }


# ============================================================================
# RESPONSES (What API sends back to client)
# ============================================================================


class PartTypeOption(BaseModel):
    """Entry in the part type picker"""

    type: str
    label: str
    category: str


class FlangeSpecResponse(BaseModel):
    """One row of the flange catalog"""

    id: int
    nominal_bore: str
    pressure_class_label: str
    pressure_class_psi: int
    bolt_count: int
    size_of_bolts: str
    wrench_no: int
    truck_unit_psi: int
    ring_needed: str
    flange_size_raw: str
    annular_pressure: Optional[int] = None
    single_ram_pressure: Optional[int] = None
    double_rams_pressure: Optional[int] = None
    mud_cross_pressure: Optional[int] = None

    class Config:
        from_attributes = True


class CandidatesResponse(BaseModel):
    """Current candidate set for a part type and filters"""

    candidates: List[FlangeSpecResponse] = []
    total: int = 0
    warnings: List[str] = []


class OptionValuesResponse(BaseModel):
    """Live option values for one attribute"""

    attribute: OptionAttribute
    values: List[Union[int, str]] = []


class ResolutionResponse(BaseModel):
    """Convergence state of a part type + filters"""

    status: str
    """resolved, no_match or ambiguous"""

    candidate_count: int
    flange_spec: Optional[FlangeSpecResponse] = None
    """Set only when status is resolved"""

    varying_attributes: List[str] = []
    """Attributes that still differ among candidates (ambiguous only)"""

    warnings: List[str] = []
