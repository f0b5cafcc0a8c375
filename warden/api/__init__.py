"""
Warden - API Package
====================

FastAPI-based read-only API over the case ledger.

Usage with bot:
    from warden.api import APIService

    api_service = APIService(core, config)
    await api_service.start()

    # On shutdown
    await api_service.stop()
"""

import asyncio
from typing import Optional

import uvicorn

from warden.core.config import Config
from warden.core.constants import SHUTDOWN_TIMEOUT
from warden.core.logger import logger
from warden.utils.async_utils import create_safe_task
from warden.api.app import create_app
from warden.api.dependencies import set_core
from warden.services.container import ModerationCore


# =============================================================================
# API Service
# =============================================================================

class APIService:
    """
    Runs the FastAPI server in a background task next to the bot.
    """

    def __init__(self, core: ModerationCore, config: Config) -> None:
        self._config = config
        self._app = create_app(core)
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the API server in a background task."""
        if self.is_running:
            logger.warning("API Already Running")
            return

        server_config = uvicorn.Config(
            app=self._app,
            host=self._config.api_host,
            port=self._config.api_port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(server_config)
        self._task = create_safe_task(self._run_server(), "API Server")

        logger.tree("API Service Started", [
            ("Host", self._config.api_host),
            ("Port", str(self._config.api_port)),
        ], emoji="🌐")

    async def _run_server(self) -> None:
        try:
            await self._server.serve()
        except Exception as e:
            logger.error("API Server Error", [
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])

    async def stop(self) -> None:
        """Stop the API server gracefully."""
        if not self.is_running:
            return

        logger.tree("API Service Stopping", [], emoji="🛑")
        if self._server:
            self._server.should_exit = True

        try:
            await asyncio.wait_for(self._task, timeout=SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            self._task.cancel()

        self._server = None
        self._task = None
        set_core(None)
        logger.tree("API Service Stopped", [], emoji="✅")


__all__ = ["APIService", "create_app"]
