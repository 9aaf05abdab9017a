from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from bop_stack.models.base import BaseModel


class PartSelection(BaseModel):
    __tablename__ = "part_selections"

    stack_id = Column(Integer, ForeignKey("stacks.id", ondelete="CASCADE"), nullable=False, index=True)
    part_type = Column(String(30), nullable=False)  # see utils.part_rules.PartType
    spool_group_id = Column(String(36), index=True)  # adapter spool sides only
    pressure_value = Column(Integer)  # pressure-driven parts only
    flange_spec_id = Column(Integer, ForeignKey("flange_specs.id"), nullable=False)

    # Relationships
    stack = relationship("Stack", back_populates="parts")
    flange_spec = relationship("FlangeSpec", back_populates="part_selections")
    order = relationship(
        "StackOrder",
        back_populates="part_selection",
        uselist=False,
        cascade="all, delete-orphan",
    )
