"""
Composite Selector
Two-sided adapter spool selection as a small state machine
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from bop_stack.exceptions import PreconditionViolationError
from bop_stack.models.flange_spec import FlangeSpec
from bop_stack.services.resolution_service import Resolution

logger = logging.getLogger(__name__)


class SelectorState(str, enum.Enum):
    AWAITING_SIDE_1 = "awaiting_side_1"
    AWAITING_SIDE_2 = "awaiting_side_2"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SpoolUnit:
    """A finished adapter spool: two resolved flange specs under one group id"""

    group_id: str
    side1: FlangeSpec
    side2: FlangeSpec


class CompositeSelector:
    """
    Holds the partial state of one adapter spool between its two resolutions.

    Side 1 and side 2 are resolved independently (own filters, full catalog,
    the same flange spec is allowed on both sides). A selector instance
    produces exactly one spool; COMPLETE is terminal.

    Example:
        selector = CompositeSelector()
        selector.select_side_1(resolve(db, "ADAPTER_SPOOL_SIDE", side1_filters))
        selector.select_side_2(resolve(db, "ADAPTER_SPOOL_SIDE", side2_filters))
        unit = selector.finalize()
    """

    def __init__(self):
        self.state = SelectorState.AWAITING_SIDE_1
        self.group_id: Optional[str] = None
        self.side1: Optional[FlangeSpec] = None
        self.side2: Optional[FlangeSpec] = None

    @classmethod
    def resume(cls, group_id: str, side1: FlangeSpec) -> "CompositeSelector":
        """Rebuild a selector already waiting for side 2 (from a stored draft)."""
        selector = cls()
        selector.group_id = group_id
        selector.side1 = side1
        selector.state = SelectorState.AWAITING_SIDE_2
        return selector

    def select_side_1(self, resolution: Resolution) -> str:
        """
        Accept the side 1 resolution and mint the group id.

        Raises:
            PreconditionViolationError: side 1 was already selected
            NoMatchError / AmbiguousSelectionError: resolution did not converge
                (state is left unchanged)
        """
        if self.state != SelectorState.AWAITING_SIDE_1:
            raise PreconditionViolationError(f"Side 1 cannot be selected while {self.state.value}")

        spec = resolution.require_single()

        self.side1 = spec
        self.group_id = str(uuid.uuid4())
        self.state = SelectorState.AWAITING_SIDE_2

        logger.debug(f"Spool {self.group_id}: side 1 -> flange spec {spec.id}")
        return self.group_id

    def select_side_2(self, resolution: Resolution) -> None:
        if self.state != SelectorState.AWAITING_SIDE_2:
            raise PreconditionViolationError(f"Side 2 cannot be selected while {self.state.value}")

        spec = resolution.require_single()

        self.side2 = spec
        self.state = SelectorState.COMPLETE

        logger.debug(f"Spool {self.group_id}: side 2 -> flange spec {spec.id}")

    def finalize(self) -> SpoolUnit:
        """
        Hand over the completed spool.

        Raises:
            PreconditionViolationError: either side is still unresolved
        """
        if self.state != SelectorState.COMPLETE:
            raise PreconditionViolationError(
                "Adapter spool needs both sides resolved before it can be added to the stack"
            )
        return SpoolUnit(group_id=self.group_id, side1=self.side1, side2=self.side2)
