"""Web frontend for Smart Bookmark."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import Config


def main(config: Config, port: int = 8765) -> None:
    """Launch the web server."""
    import uvicorn

    from .server import create_app

    app = create_app(config=config)
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="info")
