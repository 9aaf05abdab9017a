from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from bop_stack.models.base import BaseModel


class ReportExport(BaseModel):
    __tablename__ = "report_exports"

    stack_id = Column(Integer, ForeignKey("stacks.id", ondelete="CASCADE"), nullable=False, index=True)
    pdf_path = Column(String(500))  # relative to settings.REPORTS_DIR
    line_count = Column(Integer, default=0, nullable=False)

    # Relationships
    stack = relationship("Stack", back_populates="reports")
