from .base import Base, BaseModel
from .flange_spec import FlangeSpec
from .wrench_setting import WrenchSetting
from .stack import Stack, StackOrder
from .part_selection import PartSelection
from .composite_draft import CompositeDraft
from .report_export import ReportExport

__all__ = [
    "Base",
    "BaseModel",
    "FlangeSpec",
    "WrenchSetting",
    "Stack",
    "StackOrder",
    "PartSelection",
    "CompositeDraft",
    "ReportExport",
]
