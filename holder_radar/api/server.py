"""Embedded uvicorn server sharing the scheduler's event loop, RPC client and limiter."""

import uvicorn
from fastapi import FastAPI
from loguru import logger

from config.settings import settings


def build_server(app: FastAPI, *, host: str | None = None, port: int | None = None) -> uvicorn.Server:
    config = uvicorn.Config(
        app=app,
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_level="warning",
        access_log=False,
        loop="none",  # reuse the running loop
        # On-demand snapshots can take a while on large mints
        timeout_graceful_shutdown=10,
    )
    return uvicorn.Server(config)


async def run_api_server() -> None:
    from holder_radar.api.app import create_app

    server = build_server(create_app())
    logger.info(f"API starting on http://{server.config.host}:{server.config.port}")
    await server.serve()
