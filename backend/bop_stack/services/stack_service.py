"""
Stack Service
Stack lifecycle, part finalization, adapter spools and ordering
"""

import logging
import os
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from bop_stack.config import settings
from bop_stack.exceptions import (
    DataIntegrityError,
    NotFoundError,
    PreconditionViolationError,
    UnknownPartTypeError,
)
from bop_stack.messages import StackMessages
from bop_stack.models.composite_draft import CompositeDraft
from bop_stack.models.flange_spec import FlangeSpec
from bop_stack.models.part_selection import PartSelection
from bop_stack.models.stack import Stack, StackOrder
from bop_stack.schemas.flange import FlangeFilters
from bop_stack.services.composite_selector import CompositeSelector
from bop_stack.services.resolution_service import resolve
from bop_stack.utils.part_rules import PartType, get_behavior

logger = logging.getLogger(__name__)

# ============================================================================
# CREATE / GET / DELETE STACK
# ============================================================================


def create_stack(db: Session, title: Optional[str] = None) -> Stack:
    """
    Create an empty stack.

    Args:
        db: Database session
        title: Display title (defaults to settings.DEFAULT_STACK_TITLE)

    Returns:
        Created Stack

    Example:
        stack = create_stack(db, "Rig 12 - Well A")
    """
    stack = Stack(title=(title or "").strip() or settings.DEFAULT_STACK_TITLE)

    db.add(stack)
    db.commit()
    db.refresh(stack)

    logger.info(f"✅ Stack created: {stack.title} (ID: {stack.id})")

    return stack


def get_stack_by_id(db: Session, stack_id: int) -> Optional[Stack]:
    """
    Get stack by ID.

    Returns:
        Stack or None if not found
    """
    stack = db.query(Stack).filter(Stack.id == stack_id).first()

    if not stack:
        logger.debug(f"Stack not found: ID {stack_id}")
        return None

    return stack


def require_stack(db: Session, stack_id: int) -> Stack:
    stack = get_stack_by_id(db, stack_id)
    if stack is None:
        raise NotFoundError(StackMessages.STACK_NOT_FOUND.format(stack_id=stack_id))
    return stack


def delete_stack(db: Session, stack_id: int) -> None:
    """
    Delete a stack with its parts, ordering, spool drafts and report exports.

    Rendered PDF files are removed from the reports directory after commit.

    Raises:
        NotFoundError: stack doesn't exist
    """
    stack = require_stack(db, stack_id)
    pdf_paths = [report.pdf_path for report in stack.reports if report.pdf_path]

    try:
        db.delete(stack)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete stack {stack_id}: {str(e)}")
        raise

    for pdf_path in pdf_paths:
        full_path = os.path.join(settings.REPORTS_DIR, pdf_path)
        try:
            os.remove(full_path)
        except FileNotFoundError:
            logger.debug(f"Report file already gone: {full_path}")
        except OSError as e:
            logger.warning(f"⚠️  Could not remove report file {full_path}: {str(e)}")

    logger.info(f"✅ Stack deleted: ID {stack_id}")


# ============================================================================
# APPEND (single parts)
# ============================================================================


def _next_position(db: Session, stack_id: int) -> int:
    current_max = (
        db.query(func.max(StackOrder.position))
        .filter(StackOrder.stack_id == stack_id)
        .scalar()
    )
    return 0 if current_max is None else current_max + 1


def _append_part(
    db: Session,
    stack_id: int,
    part_type: PartType,
    flange_spec: FlangeSpec,
    pressure_value: Optional[int] = None,
    spool_group_id: Optional[str] = None,
) -> PartSelection:
    """Insert a part selection and its ordering row at the end (no commit)."""
    part = PartSelection(
        stack_id=stack_id,
        part_type=part_type.value,
        flange_spec_id=flange_spec.id,
        pressure_value=pressure_value,
        spool_group_id=spool_group_id,
    )
    db.add(part)
    db.flush()

    position = _next_position(db, stack_id)
    db.add(StackOrder(stack_id=stack_id, part_selection_id=part.id, position=position))
    db.flush()

    logger.debug(f"Stack {stack_id}: appended {part_type.value} part {part.id} at position {position}")

    return part


def add_part_to_stack(
    db: Session,
    stack_id: int,
    part_type: str,
    filters: Optional[FlangeFilters] = None,
) -> PartSelection:
    """
    Finalize a single-part selection and append it to the stack.

    The filters must converge to exactly one flange spec. Pressure-driven
    parts carry the rated pressure they were resolved at; every other part
    type stores none.

    Args:
        db: Database session
        stack_id: Stack ID
        part_type: PartType value (not ADAPTER_SPOOL_SIDE)
        filters: Accumulated filters

    Returns:
        Created PartSelection

    Raises:
        NotFoundError: stack doesn't exist
        UnknownPartTypeError: part type outside the closed set
        PreconditionViolationError: adapter spool side (use the spool flow)
        NoMatchError / AmbiguousSelectionError: filters did not converge
    """
    require_stack(db, stack_id)

    behavior = get_behavior(part_type)
    if behavior is None:
        raise UnknownPartTypeError(part_type)

    if behavior.is_spool:
        raise PreconditionViolationError(StackMessages.SPOOL_NEEDS_BOTH_SIDES)

    filters = filters or FlangeFilters()
    spec = resolve(db, behavior.part_type, filters).require_single()

    pressure_value = None
    if behavior.is_pressure_driven:
        pressure_value = filters.pressure or getattr(spec, behavior.pressure_column)

    try:
        part = _append_part(db, stack_id, behavior.part_type, spec, pressure_value=pressure_value)
        db.commit()
        db.refresh(part)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to add {part_type} to stack {stack_id}: {str(e)}")
        raise

    logger.info(f"✅ {behavior.label} added to stack {stack_id} (flange spec {spec.id})")

    return part


# ============================================================================
# ADAPTER SPOOLS (two-sided composite parts)
# ============================================================================


def start_composite_side_1(
    db: Session,
    stack_id: int,
    filters: Optional[FlangeFilters] = None,
) -> CompositeDraft:
    """
    Resolve side 1 of an adapter spool and keep it as a draft.

    Nothing is added to the stack yet; complete_composite_side_2() adds both
    sides together.

    Returns:
        CompositeDraft carrying the new group id

    Raises:
        NotFoundError: stack doesn't exist
        NoMatchError / AmbiguousSelectionError: side 1 did not converge
    """
    require_stack(db, stack_id)

    selector = CompositeSelector()
    group_id = selector.select_side_1(resolve(db, PartType.ADAPTER_SPOOL_SIDE, filters))

    draft = CompositeDraft(group_id=group_id, stack_id=stack_id, side1_spec_id=selector.side1.id)

    try:
        db.add(draft)
        db.commit()
        db.refresh(draft)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to store spool draft for stack {stack_id}: {str(e)}")
        raise

    logger.info(f"Adapter spool {group_id} started on stack {stack_id} (side 1: flange spec {selector.side1.id})")

    return draft


def _require_draft(db: Session, stack_id: int, group_id: str) -> CompositeDraft:
    draft = (
        db.query(CompositeDraft)
        .filter(CompositeDraft.group_id == group_id, CompositeDraft.stack_id == stack_id)
        .first()
    )
    if draft is None:
        raise NotFoundError(
            StackMessages.SPOOL_DRAFT_NOT_FOUND.format(group_id=group_id, stack_id=stack_id)
        )
    return draft


def complete_composite_side_2(
    db: Session,
    stack_id: int,
    group_id: str,
    filters: Optional[FlangeFilters] = None,
) -> List[PartSelection]:
    """
    Resolve side 2 and append both spool sides to the stack.

    Side 2 is resolved against the full catalog with its own filters. Both
    part selections are inserted (side 1 first) and the draft removed in a
    single commit.

    Returns:
        [side 1, side 2] part selections

    Raises:
        NotFoundError: no such draft on this stack
        DataIntegrityError: side 1's flange spec left the catalog
        NoMatchError / AmbiguousSelectionError: side 2 did not converge
            (the draft is kept so side 2 can be retried)
    """
    draft = _require_draft(db, stack_id, group_id)

    if draft.side1_spec is None:
        logger.error(f"Spool draft {group_id} references missing flange spec {draft.side1_spec_id}")
        raise DataIntegrityError(
            StackMessages.MISSING_FLANGE_SPEC.format(part_id=group_id, flange_spec_id=draft.side1_spec_id)
        )

    selector = CompositeSelector.resume(draft.group_id, draft.side1_spec)
    selector.select_side_2(resolve(db, PartType.ADAPTER_SPOOL_SIDE, filters))
    unit = selector.finalize()

    try:
        side1 = _append_part(db, stack_id, PartType.ADAPTER_SPOOL_SIDE, unit.side1, spool_group_id=unit.group_id)
        side2 = _append_part(db, stack_id, PartType.ADAPTER_SPOOL_SIDE, unit.side2, spool_group_id=unit.group_id)
        db.delete(draft)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to complete adapter spool {group_id}: {str(e)}")
        raise

    logger.info(
        f"✅ Adapter spool {group_id} added to stack {stack_id} "
        f"(flange specs {unit.side1.id} / {unit.side2.id})"
    )

    return [side1, side2]


def cancel_composite(db: Session, stack_id: int, group_id: str) -> None:
    """Discard an adapter spool that is still waiting for side 2."""
    draft = _require_draft(db, stack_id, group_id)

    db.delete(draft)
    db.commit()

    logger.info(f"Adapter spool {group_id} cancelled on stack {stack_id}")


# ============================================================================
# REMOVE
# ============================================================================


def remove_part_from_stack(db: Session, stack_id: int, part_id: int) -> List[int]:
    """
    Remove a part from the stack.

    Remaining positions are not renumbered. Removing either side of an
    adapter spool removes both sides, so a group never has a single side.

    Returns:
        IDs of the removed part selections

    Raises:
        NotFoundError: part doesn't belong to the stack
    """
    part = (
        db.query(PartSelection)
        .filter(PartSelection.id == part_id, PartSelection.stack_id == stack_id)
        .first()
    )

    if part is None:
        raise NotFoundError(StackMessages.PART_NOT_FOUND.format(part_id=part_id, stack_id=stack_id))

    if part.spool_group_id:
        parts = (
            db.query(PartSelection)
            .filter(
                PartSelection.stack_id == stack_id,
                PartSelection.spool_group_id == part.spool_group_id,
            )
            .all()
        )
    else:
        parts = [part]

    removed_ids = [p.id for p in parts]

    try:
        for p in parts:
            db.delete(p)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to remove part {part_id} from stack {stack_id}: {str(e)}")
        raise

    logger.info(f"Removed part(s) {removed_ids} from stack {stack_id}")

    return removed_ids


# ============================================================================
# REORDER
# ============================================================================


def reorder_stack(db: Session, stack_id: int, ordered_part_ids: Sequence[int]) -> None:
    """
    Replace the whole ordering of a stack.

    Args:
        db: Database session
        stack_id: Stack ID
        ordered_part_ids: Every current part ID exactly once, top to bottom

    Raises:
        NotFoundError: stack doesn't exist
        PreconditionViolationError: not a permutation of the current parts
            (nothing is changed)

    Example:
        reorder_stack(db, stack_id=1, ordered_part_ids=[12, 10, 11])
    """
    require_stack(db, stack_id)

    ordered_part_ids = list(ordered_part_ids)
    member_ids = {
        row[0] for row in db.query(PartSelection.id).filter(PartSelection.stack_id == stack_id).all()
    }

    if len(ordered_part_ids) != len(set(ordered_part_ids)) or set(ordered_part_ids) != member_ids:
        logger.warning(f"Rejected reorder of stack {stack_id}: {ordered_part_ids} vs members {sorted(member_ids)}")
        raise PreconditionViolationError(StackMessages.REORDER_NOT_PERMUTATION)

    orders = {
        order.part_selection_id: order
        for order in db.query(StackOrder).filter(StackOrder.stack_id == stack_id).all()
    }

    try:
        for position, part_id in enumerate(ordered_part_ids):
            order = orders.get(part_id)
            if order is None:
                db.add(StackOrder(stack_id=stack_id, part_selection_id=part_id, position=position))
            else:
                order.position = position
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to reorder stack {stack_id}: {str(e)}")
        raise

    logger.info(f"Stack {stack_id} reordered: {ordered_part_ids}")


# ============================================================================
# READ BACK
# ============================================================================


def get_stack_with_parts(db: Session, stack_id: int) -> Tuple[Stack, List[PartSelection]]:
    """
    Get a stack with its parts sorted by position.

    Each returned part has its flange_spec loaded.

    Returns:
        (Stack, ordered parts)

    Raises:
        NotFoundError: stack doesn't exist
        DataIntegrityError: a part references a flange spec that no longer exists
    """
    stack = require_stack(db, stack_id)

    parts = (
        db.query(PartSelection)
        .outerjoin(StackOrder, StackOrder.part_selection_id == PartSelection.id)
        .filter(PartSelection.stack_id == stack_id)
        .order_by(StackOrder.position.asc(), PartSelection.id.asc())
        .all()
    )

    for part in parts:
        if part.flange_spec is None:
            logger.error(
                f"[DATA INTEGRITY] Stack {stack_id} part {part.id} references "
                f"missing flange spec {part.flange_spec_id}"
            )
            raise DataIntegrityError(
                StackMessages.MISSING_FLANGE_SPEC.format(part_id=part.id, flange_spec_id=part.flange_spec_id)
            )

    return stack, parts
