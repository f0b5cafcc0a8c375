#!/usr/bin/env python3
"""
Warden - Entry Point
====================

Community moderation bot: case ledger, timed sanctions, support tickets
and member reports.

Features:
- Per-community numbered case ledger
- Temporary mutes and bans that reverse themselves, across restarts
- Support tickets with transcripts
- Member reports with private discussion channels
- Single instance enforcement
"""

import asyncio
import fcntl
import os
import sys
from typing import IO, Optional

from dotenv import load_dotenv

from warden.core.config import ConfigValidationError, validate_and_log_config
from warden.core.database import DATA_DIR
from warden.core.logger import logger
from warden.utils.error_handler import ErrorHandler


_lock_handle: Optional[IO[str]] = None


def acquire_instance_lock() -> bool:
    """
    Take an exclusive lock so only one Warden process runs per data directory.

    Sanction timers live in process memory, so two instances would both
    fire every reversal.
    """
    global _lock_handle
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    lock_path = DATA_DIR / "warden.pid"

    handle = open(lock_path, "a+")
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        handle.seek(0)
        owner = handle.read().strip() or "unknown"
        handle.close()
        logger.error("Another Instance Is Running", [
            ("Lock File", str(lock_path)),
            ("PID", owner),
        ])
        return False

    handle.seek(0)
    handle.truncate()
    handle.write(str(os.getpid()))
    handle.flush()
    _lock_handle = handle

    logger.info("Instance Lock Acquired", [
        ("PID", str(os.getpid())),
        ("Lock File", str(lock_path)),
    ])
    return True


async def main() -> None:
    """Load configuration, then run the bot until it disconnects."""
    load_dotenv()

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Invalid Configuration", [("Error", str(e))])
        sys.exit(1)

    if config.error_webhook_url:
        logger.set_webhook(config.error_webhook_url)

    from warden.bot import WardenBot

    bot = WardenBot(config)
    try:
        async with bot:
            await bot.start(config.discord_token)
    except Exception as e:
        ErrorHandler.handle(
            e,
            location="main.main",
            critical=True,
            token_present=bool(config.discord_token),
        )
        sys.exit(1)


if __name__ == "__main__":
    if not acquire_instance_lock():
        logger.error("Startup Aborted")
        sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot Stopped By User")
    except Exception as e:
        ErrorHandler.handle(
            e,
            location="main.__main__",
            critical=True,
        )
        sys.exit(1)
