from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from bop_stack.models.base import Base


class CompositeDraft(Base):
    """Adapter spool with side 1 resolved, waiting for side 2"""
    __tablename__ = "composite_drafts"

    group_id = Column(String(36), primary_key=True)
    stack_id = Column(Integer, ForeignKey("stacks.id", ondelete="CASCADE"), nullable=False, index=True)
    side1_spec_id = Column(Integer, ForeignKey("flange_specs.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    stack = relationship("Stack", back_populates="spool_drafts")
    side1_spec = relationship("FlangeSpec")
