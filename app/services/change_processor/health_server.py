import logging
from datetime import datetime, timezone

from aiohttp import web

from app.core.lifecycle import LifecycleEnabled
from app.domain.events import isoformat_utc


class HealthCheckServer(LifecycleEnabled):
    """Liveness endpoint of the change consumer worker.

    ``GET /health`` answers as soon as the socket is listening, whatever the
    state of the broker connection; every other path is a 404.
    """

    def __init__(self, host: str, port: int, service_name: str, logger: logging.Logger):
        self._host = host
        self._port = port
        self._service_name = service_name
        self.logger = logger
        self._runner: web.AppRunner | None = None
        self._actual_port: int | None = None

    @property
    def port(self) -> int | None:
        """Bound port; differs from the configured one when started with port 0."""
        return self._actual_port

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        return app

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "status": "OK",
                "timestamp": isoformat_utc(datetime.now(timezone.utc)),
                "service": self._service_name,
            }
        )

    async def start(self) -> None:
        if self._runner is not None:
            return

        runner = web.AppRunner(self.create_app(), access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise

        self._runner = runner
        addresses = runner.addresses
        self._actual_port = addresses[0][1] if addresses else self._port
        self.logger.info(f"Health check server running on port {self._actual_port}")

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        self.logger.info("Health check server closed")
