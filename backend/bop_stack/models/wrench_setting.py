from sqlalchemy import Column, Integer, String
from bop_stack.models.base import BaseModel


class WrenchSetting(BaseModel):
    """Size Scale reference: the truck unit PSI each hydraulic wrench expects"""
    __tablename__ = "wrench_settings"

    wrench_no = Column(Integer, unique=True, nullable=False, index=True)
    stud_diameter = Column(String(50))  # e.g., "1-1/8"
    truck_unit_psi = Column(Integer, nullable=False)
