"""
Stack Schemas
Pydantic models for stacks, their parts and ordering
"""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, List

from bop_stack.schemas.flange import FlangeSpecResponse


# ============================================================================
# REQUESTS (What client sends to API)
# ============================================================================


class StackCreateRequest(BaseModel):
    """Create a new, empty stack"""

    title: Optional[str] = Field(None, max_length=200)
    """Display title (defaults to "B.O.P Stack")"""

    class Config:
        example = {"title": "Rig 12 - Well A"}


class StackReorderRequest(BaseModel):
    """New top-to-bottom order: every current part ID exactly once"""

    part_ids: List[int] = Field(..., description="Part selection IDs in the new order")

    class Config:
        example = {"part_ids": [12, 10, 11]}


# ============================================================================
# RESPONSES (What API sends back to client)
# ============================================================================


class StackResponse(BaseModel):
    """Stack metadata"""

    id: int
    title: str
    created_at: datetime

    class Config:
        from_attributes = True


class PartSelectionResponse(BaseModel):
    """A finalized part in a stack"""

    id: int
    stack_id: int
    part_type: str
    label: str = ""
    spool_group_id: Optional[str] = None
    pressure_value: Optional[int] = None
    flange_spec_id: int
    position: Optional[int] = None
    created_at: datetime
    flange_spec: Optional[FlangeSpecResponse] = None

    class Config:
        from_attributes = True


class StackDetailResponse(BaseModel):
    """Stack with its parts, top to bottom"""

    stack: StackResponse
    parts: List[PartSelectionResponse] = []


class SpoolDraftResponse(BaseModel):
    """Adapter spool waiting for its second side"""

    group_id: str
    stack_id: int
    side1_spec: FlangeSpecResponse
    created_at: datetime

    class Config:
        from_attributes = True


class SpoolCompleteResponse(BaseModel):
    """Both sides of a finished adapter spool"""

    group_id: str
    parts: List[PartSelectionResponse]


class RemovedPartsResponse(BaseModel):
    removed_ids: List[int]
