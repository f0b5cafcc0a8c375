"""
Warden - Database Helpers
=========================

JSON column helpers shared by the table mixins.
"""

import json
from typing import Any, Optional

from warden.core.logger import logger


def _safe_json_loads(value: Optional[str], default: Any) -> Any:
    """Parse JSON, returning default on empty or corrupted input."""
    if not value:
        return default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.warning("Corrupted JSON In Database", [
            ("Value", value[:50]),
        ])
        return default


def _json_dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)
