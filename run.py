"""Entry point for serving the Game Review API.

Host and port are read from the ``HOST`` and ``PORT`` environment
variables and default to ``0.0.0.0`` and ``8000``.

Usage:
    python run.py
"""
import asyncio
import logging
import os

from uvicorn import Config, Server

from game_review_api.app.main import app
from game_review_api.app.core.config import settings


async def main() -> None:
    """Serve the API until interrupted."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level=settings.log_level.lower())
    server = Server(config)
    logging.getLogger(__name__).info("Serving %s on %s:%s", settings.project_name, host, port)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
