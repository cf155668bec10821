"""Run the ChatBridge service locally with uvicorn.

Development mode enables auto-reload; every other environment serves the
already-imported application object.
"""

from __future__ import annotations

import uvicorn

from chatbridge.core.config import get_settings


def main() -> None:
    settings = get_settings()
    if settings.app_env == "development":
        uvicorn.run(
            "chatbridge.llm.main:app",
            host=settings.app_host,
            port=settings.app_port,
            reload=True,
        )
        return

    from chatbridge.llm.main import app

    uvicorn.run(
        app,
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
