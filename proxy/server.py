"""
RelayServer class for CLI control of the FastAPI application.
"""
import logging

import uvicorn
from fastapi import FastAPI

from settings import PORT, LOG_LEVEL, BIND_ADDRESS, STREAM_TRACE_ENABLED, STREAM_TRACE_DIR

logger = logging.getLogger(__name__)


class RelayServer:
    """Uvicorn wrapper for CLI control"""

    def __init__(
        self,
        app: FastAPI,
        bind_address: str = None,
        port: int = None,
        log_level: str = None,
        stream_trace_enabled: bool = None,
    ):
        self.app = app
        self.server = None
        self.config = None
        self.bind_address = bind_address or BIND_ADDRESS
        self.port = port or PORT
        self.log_level = (log_level or LOG_LEVEL).lower()
        self.stream_trace_enabled = STREAM_TRACE_ENABLED if stream_trace_enabled is None else stream_trace_enabled

    def run(self):
        """Run the relay server (blocking)"""
        logger.info(f"Starting Pi Agent relay on http://{self.bind_address}:{self.port}")
        logger.info("Available endpoints: POST /chat, GET /health, GET /auth/status")
        if self.stream_trace_enabled:
            logger.warning(
                "Stream tracing is ENABLED - raw SSE chunks will be written inside '%s'",
                STREAM_TRACE_DIR,
            )
        self.config = uvicorn.Config(
            self.app,
            host=self.bind_address,
            port=self.port,
            log_level=self.log_level,
            access_log=False  # request middleware already logs each call
        )
        self.server = uvicorn.Server(self.config)
        self.server.run()
