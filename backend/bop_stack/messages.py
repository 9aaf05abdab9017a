"""
User-facing messages for the B.O.P stack configurator.

This module centralizes the messages returned to API clients so the wording
stays consistent between routers and services.
"""


class StackMessages:
    """Messages related to stacks and their parts."""

    STACK_NOT_FOUND = "Stack {stack_id} was not found."

    PART_NOT_FOUND = "Part {part_id} is not in stack {stack_id}."

    SPOOL_DRAFT_NOT_FOUND = (
        "Adapter spool {group_id} is not waiting for its second side in stack {stack_id}."
    )

    SPOOL_NEEDS_BOTH_SIDES = (
        "Adapter spools are added with both sides resolved. "
        "Use the adapter spool endpoints to select side 1 and side 2."
    )

    REORDER_NOT_PERMUTATION = (
        "The new order must list every part of the stack exactly once."
    )

    MISSING_FLANGE_SPEC = (
        "Part {part_id} references flange specification {flange_spec_id}, "
        "which no longer exists in the catalog."
    )


class ReportMessages:
    """Messages related to report generation and download."""

    REPORT_NOT_FOUND = "Report {report_id} was not found."

    REPORT_FILE_MISSING = (
        "The PDF for report {report_id} is no longer available. "
        "Please generate the report again."
    )


class IngestMessages:
    """Messages related to flange catalog uploads."""

    UNSUPPORTED_FILE = "Only .csv and .xlsx flange catalogs are supported."

    FILE_TOO_LARGE = "File is too large. Maximum upload size is {max_mb} MB."

    EMPTY_FILE = "The uploaded file is empty."

    NO_USABLE_ROWS = (
        "No usable flange rows were found. "
        "Check that the sheet has Flange size, Size of bolts and Ring needed columns."
    )

    SPEC_STILL_IN_USE = (
        "Kept {flange_size} ({bolt_count} x {bolt_size}): "
        "it is still used by a stack or an open adapter spool"
    )

    IMPORT_SUCCESS ="Imported {total} flange specifications ({created} new, {updated} updated)."


class SystemMessages:
    """Generic system messages."""

    INTERNAL_ERROR = "An unexpected error occurred. Please try again later."

    DATA_INTEGRITY = (
        "The stack references catalog data that no longer exists. "
        "Please contact your administrator."
    )
