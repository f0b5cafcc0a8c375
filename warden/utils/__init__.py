"""
Warden - Utilities Package
==========================

Duration codec, async helpers, clock, validators, welcome placeholders
and error handling.
"""

from warden.utils.duration import parse_duration, format_duration, is_valid_duration_ms
from warden.utils.async_utils import gather_with_logging, safe_async_operation, create_safe_task
from warden.utils.clock import Clock, SYSTEM_CLOCK
from warden.utils.validators import Validators, parse_evidence, parse_user_reference
from warden.utils.placeholders import DEFAULT_WELCOME_TEMPLATE, WelcomeContext, render_welcome_template

__all__ = [
    "parse_duration",
    "format_duration",
    "is_valid_duration_ms",
    "gather_with_logging",
    "safe_async_operation",
    "create_safe_task",
    "Clock",
    "SYSTEM_CLOCK",
    "Validators",
    "parse_evidence",
    "parse_user_reference",
    "DEFAULT_WELCOME_TEMPLATE",
    "WelcomeContext",
    "render_welcome_template",
]
