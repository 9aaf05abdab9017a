"""
Dependency Injection
Reusable dependencies for routes
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from bop_stack.db.database import get_db
from bop_stack.messages import StackMessages
from bop_stack.models.stack import Stack
from bop_stack.schemas.flange import FlangeFilters
from bop_stack.services.stack_service import get_stack_by_id

logger = logging.getLogger(__name__)

# ============================================================================
# FILTERS FROM QUERY STRING (option / candidate routes)
# ============================================================================


async def get_flange_filters(
    pressure: Optional[int] = Query(None, gt=0, description="Rated pressure (pressure-driven parts)"),
    flange_size: Optional[str] = Query(None, alias="flangeSize", description="Raw flange size, e.g. 13-5/8 5M"),
    bolt_count: Optional[int] = Query(None, alias="boltCount", ge=1),
    bolt_size: Optional[str] = Query(None, alias="boltSize"),
    nominal_bore: Optional[str] = Query(None, alias="nominalBore"),
    pressure_class: Optional[str] = Query(None, alias="pressureClass"),
) -> FlangeFilters:
    """
    Collect the filters chosen so far from the query string.

    Example:
        GET /api/options/flanges?part=ANNULAR&pressure=5000&boltCount=16
    """
    try:
        return FlangeFilters(
            pressure=pressure,
            flange_size=flange_size,
            bolt_count=bolt_count,
            bolt_size=bolt_size,
            nominal_bore=nominal_bore,
            pressure_class=pressure_class,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False),
        )


# ============================================================================
# EXISTING STACK (stack routes)
# ============================================================================


async def get_existing_stack(
    stack_id: int,
    db: Session = Depends(get_db),
) -> Stack:
    """
    Load the stack named in the path or fail with 404.

    Raises:
        HTTPException 404: stack doesn't exist
    """
    stack = get_stack_by_id(db, stack_id)

    if stack is None:
        logger.warning(f"Stack not found: ID {stack_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=StackMessages.STACK_NOT_FOUND.format(stack_id=stack_id),
        )

    return stack
