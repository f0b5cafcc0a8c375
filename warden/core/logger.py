"""
Warden - Logger Module
======================

Tree-style logging with dated log folders and webhook error alerts.

DESIGN:
    Structured, hierarchical output that's easy to scan. Every log call
    may carry a list of (key, value) details which is rendered as a tree
    under the title line.

    Key features:
    - Tree-style formatting for structured data
    - Daily log folders with 7-day retention
    - Session tracking with unique run IDs
    - Separate errors-only log file
    - Discord webhook integration for error alerts
"""

import asyncio
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

import aiohttp

from warden.core.constants import WEBHOOK_TIMEOUT


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("WARDEN_LOG_DIR", "logs"))
"""Directory for all log files, organized by date."""

LOG_RETENTION_DAYS = 7
"""Number of days to retain log directories before cleanup."""

LOG_TZ = ZoneInfo(os.getenv("LOG_TIMEZONE", "UTC"))
"""Timezone used for log timestamps."""

Details = Optional[List[Tuple[str, str]]]


# =============================================================================
# Tree Logger Class
# =============================================================================

class TreeLogger:
    """
    Logger with tree-style formatting.

    Attributes:
        run_id: Unique identifier for this process session.
        log_file: Path to the main log file.
        error_file: Path to the error-only log file.
    """

    def __init__(self) -> None:
        self.run_id: str = str(uuid.uuid4())[:8]
        self._webhook_url: Optional[str] = None

        today = datetime.now(LOG_TZ).strftime("%Y-%m-%d")
        self.log_dir = LOGS_DIR / today
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"Warden-{today}.log"
        self.error_file = self.log_dir / f"Warden-Errors-{today}.log"

        self._cleanup_old_logs()
        self._write_session_header()

    def set_webhook(self, url: Optional[str]) -> None:
        """Set webhook URL for error notifications."""
        self._webhook_url = url

    # =========================================================================
    # Log Cleanup
    # =========================================================================

    def _cleanup_old_logs(self) -> None:
        """Remove dated log directories older than the retention period."""
        if not LOGS_DIR.exists():
            return

        now = datetime.now()
        deleted = 0

        for item in LOGS_DIR.iterdir():
            if not item.is_dir():
                continue
            try:
                dir_date = datetime.strptime(item.name, "%Y-%m-%d")
            except ValueError:
                continue
            if (now - dir_date).days > LOG_RETENTION_DAYS:
                for f in item.iterdir():
                    f.unlink()
                item.rmdir()
                deleted += 1

        if deleted > 0:
            print(f"[LOG CLEANUP] Removed {deleted} old log directories")

    def _write_session_header(self) -> None:
        header = f"""
============================================================
NEW SESSION - RUN ID: {self.run_id}
[{datetime.now(LOG_TZ).strftime("%Y-%m-%d %H:%M:%S %Z")}]
============================================================
"""
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(header)

    # =========================================================================
    # Core Logging
    # =========================================================================

    def _get_timestamp(self) -> str:
        return datetime.now(LOG_TZ).strftime("[%H:%M:%S %Z]")

    def _write(
        self,
        message: str,
        emoji: str = "",
        include_timestamp: bool = True,
        is_error: bool = False,
    ) -> None:
        """
        Write a line to console and file.

        Main log captures everything, the error log only errors.
        """
        if include_timestamp:
            timestamp = self._get_timestamp()
            full_message = f"{timestamp} {emoji} {message}" if emoji else f"{timestamp} {message}"
        else:
            full_message = f"{emoji} {message}" if emoji else message

        print(full_message)

        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(f"{full_message}\n")

        if is_error:
            with open(self.error_file, "a", encoding="utf-8") as f:
                f.write(f"{full_message}\n")

    def _write_items(self, items: List[Tuple[str, str]], is_error: bool = False) -> None:
        for i, (key, value) in enumerate(items):
            prefix = "└─" if i == len(items) - 1 else "├─"
            self._write(f"  {prefix} {key}: {value}", include_timestamp=False, is_error=is_error)

    def _log(self, msg: str, emoji: str, details: Details, is_error: bool = False) -> None:
        self._write(msg, emoji, is_error=is_error)
        if details:
            self._write_items(details, is_error=is_error)

    # =========================================================================
    # Tree Formatting
    # =========================================================================

    def tree(
        self,
        title: str,
        items: List[Tuple[str, str]],
        emoji: str = "📦",
    ) -> None:
        """
        Log structured data in tree format.

        Example output:
            [14:30:45 UTC] 📦 Case Recorded
              ├─ Guild: 5
              ├─ Case: #12
              └─ Type: warn
        """
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write("\n")

        self._write(title, emoji=emoji)
        self._write_items(items)

        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write("\n")

    # =========================================================================
    # Log Levels
    # =========================================================================

    def debug(self, msg: str, details: Details = None) -> None:
        """Log debug message (only if DEBUG env var set)."""
        if os.getenv("DEBUG"):
            self._log(msg, "🔍", details)

    def info(self, msg: str, details: Details = None) -> None:
        self._log(msg, "ℹ️", details)

    def success(self, msg: str, details: Details = None) -> None:
        self._log(msg, "✅", details)

    def warning(self, msg: str, details: Details = None) -> None:
        self._log(msg, "⚠️", details)

    def error(self, msg: str, details: Details = None) -> None:
        """
        Log error message with optional structured details.

        Errors with details are forwarded to the webhook if one is set
        and an event loop is running.
        """
        self._log(msg, "❌", details, is_error=True)

        if details and self._webhook_url:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            loop.create_task(self._send_webhook_error(msg, details))

    def critical(self, msg: str, details: Details = None) -> None:
        self._log(msg, "🚨", details, is_error=True)

    # =========================================================================
    # Webhook Integration
    # =========================================================================

    async def _send_webhook_error(
        self,
        title: str,
        details: List[Tuple[str, str]],
    ) -> None:
        """Send error notification to the configured Discord webhook."""
        if not self._webhook_url:
            return

        description = "\n".join([f"**{k}:** {v}" for k, v in details])
        payload = {
            "embeds": [{
                "title": f"❌ {title}",
                "description": description[:4000],
                "color": 0xFF0000,
                "timestamp": datetime.now(LOG_TZ).isoformat(),
                "footer": {"text": f"Run ID: {self.run_id}"},
            }]
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._webhook_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=WEBHOOK_TIMEOUT),
                ) as resp:
                    if resp.status != 204:
                        print(f"Webhook error: {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"Failed to send webhook: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()
"""Global logger instance shared by every module."""


__all__ = [
    "logger",
    "TreeLogger",
]
