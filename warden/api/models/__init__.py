"""
Warden - API Models
===================
"""

from .base import APIResponse, HealthData
from .cases import CaseItem, CaseListData, CaseStatsData

__all__ = ["APIResponse", "HealthData", "CaseItem", "CaseListData", "CaseStatsData"]
