from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from bop_stack.models.base import Base, BaseModel


class Stack(BaseModel):
    __tablename__ = "stacks"

    title = Column(String(200), nullable=False, default="B.O.P Stack")

    # Relationships
    parts = relationship("PartSelection", back_populates="stack", cascade="all, delete-orphan")
    orders = relationship("StackOrder", back_populates="stack", cascade="all, delete-orphan")
    reports = relationship("ReportExport", back_populates="stack", cascade="all, delete-orphan")
    spool_drafts = relationship("CompositeDraft", back_populates="stack", cascade="all, delete-orphan")


class StackOrder(Base):
    """Position of one part selection within its stack"""
    __tablename__ = "stack_orders"

    stack_id = Column(Integer, ForeignKey("stacks.id", ondelete="CASCADE"), primary_key=True)
    part_selection_id = Column(
        Integer, ForeignKey("part_selections.id", ondelete="CASCADE"), primary_key=True
    )
    position = Column(Integer, nullable=False)

    # Relationships
    stack = relationship("Stack", back_populates="orders")
    part_selection = relationship("PartSelection", back_populates="order")
