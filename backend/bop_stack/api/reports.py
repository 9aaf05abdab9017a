"""
Reports Routes
GET /api/stack/{stackId}/report - Report lines + summary (JSON)
POST /api/stack/{stackId}/report - Render the report to PDF and store it
GET /api/reports/{reportId}/pdf - Download a stored PDF
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from bop_stack.db.database import get_db
from bop_stack.dependencies import get_existing_stack
from bop_stack.models.stack import Stack
from bop_stack.schemas.report import (
    ReportDocumentResponse,
    ReportExportResponse,
    ReportSummaryResponse,
)
from bop_stack.services.report_service import (
    export_report,
    generate_report,
    get_report_file_path,
)

logger = logging.getLogger(__name__)

# Stack-scoped routes are mounted under /api/stack, downloads under /api/reports
stack_router = APIRouter()
router = APIRouter()


@stack_router.get(
    "/{stack_id}/report",
    response_model=ReportDocumentResponse,
    status_code=status.HTTP_200_OK,
    summary="Preview report",
)
async def preview_report(
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
) -> ReportDocumentResponse:
    document = generate_report(db, stack.id)

    return ReportDocumentResponse(
        stack_id=document.stack_id,
        title=document.title,
        generated_at=document.generated_at,
        lines=document.texts,
        summary=ReportSummaryResponse.model_validate(document.summary),
    )


@stack_router.post(
    "/{stack_id}/report",
    response_model=ReportExportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate PDF report",
)
async def create_report(
    stack: Stack = Depends(get_existing_stack),
    db: Session = Depends(get_db),
) -> ReportExportResponse:
    """
    Render the stack report to PDF and keep it for download.

    Example:
        POST /api/stack/1/report
        {"id": 4, "stack_id": 1, "line_count": 5, "download_url": "/api/reports/4/pdf", ...}
    """
    logger.info(f"Generating report for stack {stack.id}")

    report = export_report(db, stack.id)

    response = ReportExportResponse.model_validate(report)
    response.download_url = f"/api/reports/{report.id}/pdf"
    return response


@router.get(
    "/{report_id}/pdf",
    status_code=status.HTTP_200_OK,
    summary="Download PDF report",
    response_class=FileResponse,
)
async def download_report(
    report_id: int,
    db: Session = Depends(get_db),
) -> FileResponse:
    full_path = get_report_file_path(db, report_id)

    return FileResponse(
        full_path,
        media_type="application/pdf",
        filename=f"bop-stack-report-{report_id}.pdf",
    )
