"""
Ingestion Routes
POST /api/ingest - Upload a flange catalog (.csv / .xlsx)
"""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from bop_stack.config import settings
from bop_stack.db.database import get_db
from bop_stack.messages import IngestMessages
from bop_stack.schemas.ingest import IngestResponse
from bop_stack.services.ingestion_service import import_catalog, parse_catalog_file

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=IngestResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload flange catalog",
    description="Parse a Common Flanges sheet (and optional Size Scale sheet) and upsert it",
)
async def upload_catalog(
    file: UploadFile = File(..., description="Flange catalog (.csv or .xlsx)"),
    replace: bool = Form(False, description="Remove specs that are not in the file"),
    db: Session = Depends(get_db),
) -> IngestResponse:
    """
    Upload a flange catalog.

    Raises:
        HTTPException 400: unsupported, empty or unusable file
        HTTPException 413: file larger than MAX_UPLOAD_MB
        HTTPException 500: database failure while importing

    Example:
        POST /api/ingest (multipart: file=@flanges.xlsx, replace=true)
    """
    content = await file.read()

    max_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    if len(content) > max_bytes:
        logger.warning(f"Rejected upload {file.filename}: {len(content)} bytes")
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=IngestMessages.FILE_TOO_LARGE.format(max_mb=settings.MAX_UPLOAD_MB),
        )

    logger.info(f"Importing flange catalog {file.filename} ({len(content)} bytes, replace={replace})")

    # CatalogParseError is mapped to 400 by the app exception handler
    parsed = parse_catalog_file(file.filename, content)

    summary, error = import_catalog(db, parsed, replace=replace)

    if error:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error,
        )

    return IngestResponse(
        message=IngestMessages.IMPORT_SUCCESS.format(
            total=summary.total, created=summary.created, updated=summary.updated
        ),
        total=summary.total,
        created=summary.created,
        updated=summary.updated,
        removed=summary.removed,
        kept=summary.kept,
        wrench_settings=summary.wrench_settings,
        skipped=summary.skipped,
        warnings=summary.warnings,
    )
