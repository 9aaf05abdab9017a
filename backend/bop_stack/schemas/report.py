"""
Report Schemas
"""

from datetime import datetime
from pydantic import BaseModel
from typing import List


class ReportSummaryResponse(BaseModel):
    total_parts: int
    pressure_range: str
    flange_classes: str

    class Config:
        from_attributes = True


class ReportDocumentResponse(BaseModel):
    """Formatted report lines plus summary (not stored)"""

    stack_id: int
    title: str
    generated_at: datetime
    lines: List[str] = []
    summary: ReportSummaryResponse


class ReportExportResponse(BaseModel):
    """A rendered, stored PDF report"""

    id: int
    stack_id: int
    line_count: int
    created_at: datetime
    download_url: str = ""

    class Config:
        from_attributes = True
