"""Road hazard reporter service package."""

from __future__ import annotations

import logging
import os
from importlib.metadata import version, PackageNotFoundError

import uvicorn

try:
    __version__ = version("road-reporter")
except PackageNotFoundError:
    __version__ = "unknown"


def main() -> None:
    """Run the reporter FastAPI app with uvicorn.

    Honors PORT, HOST, RELOAD and LOG_LEVEL environment variables if provided.
    """
    from reporter.settings import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload_flag = os.getenv("RELOAD", "false").lower() == "true"

    uvicorn.run("reporter.app:app", host=host, port=port, reload=reload_flag)
