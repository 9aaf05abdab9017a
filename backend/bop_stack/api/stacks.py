"""
Stack Routes
Build and order a B.O.P stack
POST /api/stack - Create stack
GET /api/stack/{stackId} - Stack with ordered parts
DELETE /api/stack/{stackId} - Delete stack
POST /api/stack/{stackId}/items - Finalize a part selection and append it
DELETE /api/stack/{stackId}/items/{partId} - Remove a part (both sides for a spool)
POST /api/stack/{stackId}/spools - Resolve adapter spool side 1
POST /api/stack/{stackId}/spools/{groupId}/side2 - Resolve side 2 and append the spool
DELETE /api/stack/{stackId}/spools/{groupId} - Cancel an unfinished spool
PATCH /api/stack/{stackId}/order - Replace the part order
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from bop_stack.db.database import get_db
from bop_stack.dependencies import get_existing_stack
from bop_stack.exceptions import AmbiguousSelectionError, ResolutionError
from bop_stack.models.part_selection import PartSelection
from bop_stack.models.stack import Stack
from bop_stack.schemas.flange import AddPartRequest, FlangeSpecResponse, SpoolSideRequest
from bop_stack.schemas.stack import (
    PartSelectionResponse,
    RemovedPartsResponse,
    SpoolCompleteResponse,
    SpoolDraftResponse,
    StackCreateRequest,
    StackDetailResponse,
    StackReorderRequest,
    StackResponse,
)
from bop_stack.services.stack_service import (
    add_part_to_stack,
    cancel_composite,
    complete_composite_side_2,
    create_stack,
    delete_stack,
    get_stack_with_parts,
    remove_part_from_stack,
    reorder_stack,
    start_composite_side_1,
)
from bop_stack.utils.part_rules import display_label

logger = logging.getLogger(__name__)

router = APIRouter()


def _part_response(part: PartSelection) -> PartSelectionResponse:
    return PartSelectionResponse(
        id=part.id,
        stack_id=part.stack_id,
        part_type=part.part_type,
        label=display_label(part.part_type),
        spool_group_id=part.spool_group_id,
        pressure_value=part.pressure_value,
        flange_spec_id=part.flange_spec_id,
        position=part.order.position if part.order else None,
        created_at=part.created_at,
        flange_spec=FlangeSpecResponse.model_validate(part.flange_spec) if part.flange_spec else None,
    )


def _resolution_http_error(error: ResolutionError) -> HTTPException:
    """NoMatch -> 404, Ambiguous -> 409 with the attributes still varying."""
    if isinstance(error, AmbiguousSelectionError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": error.message,
                "candidate_count": error.candidate_count,
                "varying_attributes": error.varying_attributes,
            },
        )
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)


# ============================================================================
# CREATE STACK - POST /api/stack
# ============================================================================


@router.post(
    "",
    response_model=StackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create stack",
)
async def create_new_stack(
    request: StackCreateRequest,
    db: Session = Depends(get_db),
) -> StackResponse:
    """
    Example:
        POST /api/stack
        {"title": "Rig 12 - Well A"}
    """
    stack = create_stack(db, request.title)
    return StackResponse.model_validate(stack)


# ============================================================================
# GET / DELETE STACK - /api/stack/{stackId}
# ============================================================================


@router.get(
    "/{stack_id}",
    response_model=StackDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Get stack with parts",
)
async def get_stack(
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
) -> StackDetailResponse:
    stack, parts = get_stack_with_parts(db, stack.id)

    return StackDetailResponse(
        stack=StackResponse.model_validate(stack),
        parts=[_part_response(part) for part in parts],
    )


@router.delete(
    "/{stack_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete stack",
)
async def remove_stack(
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
):
    delete_stack(db, stack.id)
    return {"message": "Stack deleted successfully", "stack_id": stack.id}


# ============================================================================
# ADD PART - POST /api/stack/{stackId}/items
# ============================================================================


@router.post(
    "/{stack_id}/items",
    response_model=PartSelectionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add part",
    description="Finalize a part selection (filters must match exactly one flange spec) and append it",
)
async def add_part(
    request: AddPartRequest,
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
) -> PartSelectionResponse:
    """
    Add a single part to the bottom of the stack.

    Raises:
        HTTPException 400: unknown part type
        HTTPException 404: filters match nothing
        HTTPException 409: filters match several specs (see varying_attributes)
        HTTPException 422: adapter spool sent here instead of the spool routes

    Example:
        POST /api/stack/1/items
        {"part_type": "ANNULAR", "filters": {"pressure": 5000, "bolt_count": 16}}
    """
    logger.info(f"Adding {request.part_type} to stack {stack.id}")

    try:
        part = add_part_to_stack(db, stack.id, request.part_type, request.filters)
    except ResolutionError as e:
        logger.info(f"{request.part_type} not finalized: {e.message}")
        raise _resolution_http_error(e)

    return _part_response(part)


@router.delete(
    "/{stack_id}/items/{part_id}",
    response_model=RemovedPartsResponse,
    status_code=status.HTTP_200_OK,
    summary="Remove part",
)
async def remove_part(
    part_id: int,
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
) -> RemovedPartsResponse:
    removed_ids = remove_part_from_stack(db, stack.id, part_id)
    return RemovedPartsResponse(removed_ids=removed_ids)


# ============================================================================
# ADAPTER SPOOLS - /api/stack/{stackId}/spools
# ============================================================================


@router.post(
    "/{stack_id}/spools",
    response_model=SpoolDraftResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start adapter spool",
    description="Resolve side 1; the spool is added once side 2 is resolved",
)
async def start_spool(
    request: SpoolSideRequest,
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
) -> SpoolDraftResponse:
    try:
        draft = start_composite_side_1(db, stack.id, request.filters)
    except ResolutionError as e:
        raise _resolution_http_error(e)

    return SpoolDraftResponse.model_validate(draft)


@router.post(
    "/{stack_id}/spools/{group_id}/side2",
    response_model=SpoolCompleteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Complete adapter spool",
)
async def complete_spool(
    group_id: str,
    request: SpoolSideRequest,
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
) -> SpoolCompleteResponse:
    """
    Resolve side 2 and append both sides to the stack.

    If side 2 doesn't converge the spool stays open and side 2 can be retried.
    """
    try:
        parts = complete_composite_side_2(db, stack.id, group_id, request.filters)
    except ResolutionError as e:
        raise _resolution_http_error(e)

    return SpoolCompleteResponse(group_id=group_id, parts=[_part_response(p) for p in parts])


@router.delete(
    "/{stack_id}/spools/{group_id}",
    status_code=status.HTTP_200_OK,
    summary="Cancel adapter spool",
)
async def cancel_spool(
    group_id: str,
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
):
    cancel_composite(db, stack.id, group_id)
    return {"message": "Adapter spool cancelled", "group_id": group_id}


# ============================================================================
# REORDER - PATCH /api/stack/{stackId}/order
# ============================================================================


@router.patch(
    "/{stack_id}/order",
    response_model=StackDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Reorder stack",
)
async def update_order(
    request: StackReorderRequest,
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
) -> StackDetailResponse:
    """
    Replace the whole order. part_ids must list every part exactly once;
    anything else is rejected with 422 and the order is left unchanged.

    Example:
        PATCH /api/stack/1/order
        {"part_ids": [3, 1, 2]}
    """
    reorder_stack(db, stack.id, request.part_ids)

    stack, parts = get_stack_with_parts(db, stack.id)
    return StackDetailResponse(
        stack=StackResponse.model_validate(stack),
        parts=[_part_response(part) for part in parts],
    )
