"""Run the API with uvicorn: ``python -m grievai``."""

from __future__ import annotations

import uvicorn

from config.settings import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "grievai.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
