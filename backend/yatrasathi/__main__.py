"""Serve the console with uvicorn: ``python -m yatrasathi`` or ``yatrasathi-console``."""
import uvicorn

from .config import get_settings


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "yatrasathi.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,
    )


if __name__ == "__main__":
    run()
