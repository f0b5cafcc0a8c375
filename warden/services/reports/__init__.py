"""
Warden - Report System
======================

Member report workflow.
"""

from .service import ReportWorkflow

__all__ = ["ReportWorkflow"]
