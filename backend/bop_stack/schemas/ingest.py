"""
Ingestion Schemas
"""

from pydantic import BaseModel
from typing import List


class IngestResponse(BaseModel):
    """Outcome of a flange catalog upload"""

    message: str
    total: int = 0
    created: int = 0
    updated: int = 0
    removed: int = 0
    kept: int = 0
    wrench_settings: int = 0
    skipped: int = 0
    warnings: List[str] = []

    class Config:
        from_attributes = True
