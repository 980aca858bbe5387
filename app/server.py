"""
Process entry point.

Runs the API under a captured uvicorn.Server. An unhandled error on the event
loop triggers a graceful shutdown of that server and a non-zero exit; if the
server does not stop within the grace period the process is terminated.
"""
import asyncio
import logging
import os
import sys
from typing import Callable, Optional

import uvicorn

from app.core.config import Config, settings
from app.core.logging import setup_logging

logger = logging.getLogger(__name__)


class ServerSupervisor:
    def __init__(
        self,
        server: uvicorn.Server,
        grace_seconds: float,
        exit_func: Callable[[int], None] = os._exit,
    ):
        self.server = server
        self.grace_seconds = grace_seconds
        self.failed = False
        self._exit = exit_func

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.set_exception_handler(self.handle_exception)

    def handle_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        logger.error(
            f"Unhandled error: {context.get('message', exc)}",
            exc_info=(type(exc), exc, exc.__traceback__) if exc else None,
        )
        if self.failed:
            return
        self.failed = True
        # Graceful first, then force after the grace period
        self.server.should_exit = True
        loop.call_later(self.grace_seconds, self._force_exit)

    def _force_exit(self) -> None:
        logger.error(f"Server did not stop within {self.grace_seconds}s, forcing exit")
        self._exit(1)

    async def serve(self) -> None:
        self.install(asyncio.get_running_loop())
        await self.server.serve()

    @property
    def exit_code(self) -> int:
        if self.failed or not self.server.started:
            return 1
        return 0


def build_server(config: Config) -> uvicorn.Server:
    from app.main import create_app

    uvicorn_config = uvicorn.Config(
        create_app(config),
        host=config.host,
        port=config.port,
        lifespan="on",
        log_config=None,  # keep the JSON handlers from setup_logging
    )
    return uvicorn.Server(uvicorn_config)


def run(config: Optional[Config] = None) -> None:
    config = config or settings
    setup_logging(config.environment, config.app_name)
    supervisor = ServerSupervisor(build_server(config), config.shutdown_grace_seconds)
    logger.info(f"Server running on port {config.port} in {config.environment} mode")
    asyncio.run(supervisor.serve())
    if supervisor.exit_code:
        logger.error("Server stopped after a fatal error")
        sys.exit(supervisor.exit_code)


if __name__ == "__main__":
    run()
