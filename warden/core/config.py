"""
Warden - Configuration Module
=============================

Process-wide configuration loaded from environment variables.

DESIGN:
    A single dataclass is the source of truth for deployment settings,
    loaded and validated once at startup. Per-community settings (mute
    role, log channels, categories) live in the database instead, see
    warden.core.database.settings.

    Key patterns:
    - get_config() caches one Config instance
    - Validation happens once at load time
    - Services receive the Config explicitly so tests can build their own
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Set

from warden.core.constants import (
    DEFAULT_API_HOST,
    DEFAULT_API_PORT,
    DEFAULT_CHANNEL_GRACE_SECONDS,
)


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Deployment configuration loaded from environment variables.

    Attributes:
        discord_token: Discord bot authentication token.
        staff_role_ids: Roles granted access to ticket and report channels.
        number_sanction_cases: Whether direct sanctions receive a case number.
        channel_grace_seconds: Delay between a close notice and channel deletion.
        error_webhook_url: Discord webhook for error alerts.
        api_enabled: Whether to serve the read-only HTTP API.
    """

    discord_token: str

    staff_role_ids: Set[int] = field(default_factory=set)
    number_sanction_cases: bool = False
    channel_grace_seconds: int = DEFAULT_CHANNEL_GRACE_SECONDS

    error_webhook_url: Optional[str] = None

    api_enabled: bool = False
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _parse_int(value: Optional[str], name: str) -> int:
    """
    Parse string to integer with descriptive error handling.

    Raises:
        ConfigValidationError: If value is missing or not a valid integer.
    """
    if not value:
        raise ConfigValidationError(f"Missing required: {name}")
    try:
        return int(value)
    except ValueError:
        raise ConfigValidationError(f"Invalid integer for {name}: {value}")


def _parse_int_optional(value: Optional[str]) -> Optional[int]:
    """Parse optional string to integer, returning None on failure."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_int_set(value: Optional[str]) -> Set[int]:
    """Parse comma-separated string ("123,456") to a set of integers."""
    if not value:
        return set()
    result = set()
    for part in value.split(","):
        part = part.strip()
        if part:
            try:
                result.add(int(part))
            except ValueError:
                pass  # Skip invalid entries
    return result


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse optional integer with default and range clamping.

    Returns:
        Parsed integer within the valid range, or default.
    """
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        from warden.core.logger import logger
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        from warden.core.logger import logger
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        from warden.core.logger import logger
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """Validate URL format for webhooks, returning None if invalid."""
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from warden.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated Config object.

    Raises:
        ConfigValidationError: If DISCORD_TOKEN is missing.
    """
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise ConfigValidationError("Missing required: DISCORD_TOKEN")

    return Config(
        discord_token=token,
        staff_role_ids=_parse_int_set(os.getenv("STAFF_ROLE_IDS")),
        number_sanction_cases=_parse_bool(os.getenv("NUMBER_SANCTION_CASES")),
        channel_grace_seconds=_parse_int_with_default(
            os.getenv("CHANNEL_GRACE_SECONDS"),
            DEFAULT_CHANNEL_GRACE_SECONDS,
            "CHANNEL_GRACE_SECONDS",
            min_val=0,
            max_val=60,
        ),
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
        api_enabled=_parse_bool(os.getenv("API_ENABLED")),
        api_host=os.getenv("API_HOST") or DEFAULT_API_HOST,
        api_port=_parse_int_with_default(
            os.getenv("API_PORT"),
            DEFAULT_API_PORT,
            "API_PORT",
            min_val=1,
            max_val=65535,
        ),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> Config:
    """Load the config (triggering validation) and log a summary."""
    from warden.core.logger import logger

    config = get_config()

    logger.tree("Configuration Validated", [
        ("Staff Roles", str(len(config.staff_role_ids))),
        ("Number Sanction Cases", str(config.number_sanction_cases)),
        ("Channel Grace", f"{config.channel_grace_seconds}s"),
        ("Webhook Alerts", "Enabled" if config.error_webhook_url else "Disabled"),
        ("API", f"{config.api_host}:{config.api_port}" if config.api_enabled else "Disabled"),
    ], emoji="⚙️")

    return config


__all__ = [
    "Config",
    "ConfigValidationError",
    "load_config",
    "get_config",
    "validate_and_log_config",
]
