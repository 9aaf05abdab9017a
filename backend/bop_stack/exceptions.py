"""
Custom exceptions for the B.O.P stack configurator.

This module defines the hierarchy of named outcomes raised by the services.
Most of them are expected results of normal operation (a filter combination
that matches nothing, a selection that still needs narrowing) and callers are
expected to branch on them. DataIntegrityError is the exception: it means the
catalog changed underneath an existing stack and needs investigation.
"""

from typing import List, Optional


class StackConfigError(Exception):
    """
    Base exception for all configurator errors.

    Use this as a catch-all when you want to handle any service
    outcome without caring about the specific type.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


# ============================================================================
# RESOLUTION OUTCOMES
# ============================================================================


class ResolutionError(StackConfigError):
    """Base class for filter resolution outcomes that are not a single match."""

    pass


class NoMatchError(ResolutionError):
    """
    Raised when the filters over-constrain to zero flange specs.

    Example:
        Annular at 5000 PSI with 999 bolts.
    """

    def __init__(self, message: str = "No flange specification matches the selected filters"):
        super().__init__(message)


class AmbiguousSelectionError(ResolutionError):
    """
    Raised when the filters still match more than one flange spec.

    Carries the attributes that still vary among the candidates so the
    caller knows which filter to supply next.
    """

    def __init__(
        self,
        varying_attributes: List[str],
        candidate_count: int,
        message: Optional[str] = None,
    ):
        self.varying_attributes = varying_attributes
        self.candidate_count = candidate_count
        super().__init__(
            message
            or f"{candidate_count} flange specifications match; narrow by: {', '.join(varying_attributes)}"
        )


class UnknownPartTypeError(StackConfigError):
    """Raised when a part type is not one of the recognized categories."""

    def __init__(self, part_type: str):
        self.part_type = part_type
        super().__init__(f"Unknown part type: {part_type}")


# ============================================================================
# STACK OUTCOMES
# ============================================================================


class PreconditionViolationError(StackConfigError):
    """
    Raised when an operation is attempted out of order or with bad input.

    Examples:
        Adding an adapter spool before both sides are resolved.
        Reordering a stack with ids that are not a permutation of its parts.
    """

    pass


class NotFoundError(StackConfigError):
    """Raised when a stack, part, spool draft or report doesn't exist."""

    pass


class DataIntegrityError(StackConfigError):
    """
    Raised when a part selection references a flange spec that no longer exists.

    This is a system-level fault: the catalog was replaced underneath an
    existing stack. Never swallow it.
    """

    pass


# ============================================================================
# INGESTION
# ============================================================================


class CatalogParseError(StackConfigError):
    """
    Raised when an uploaded catalog file cannot be turned into flange specs.

    Example:
        Empty CSV, missing "Common Flanges" sheet, unsupported extension.
    """

    pass
