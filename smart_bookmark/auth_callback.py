"""One-shot local HTTP endpoint that receives the OAuth redirect.

The terminal UI can't be redirected to, so sign-in points the provider's
``redirect_to`` at ``http://127.0.0.1:<port>/auth/callback`` and serves that
route with uvicorn just long enough to capture the authorization code.
"""

from __future__ import annotations

import asyncio
import html
import socket

import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from .backend.base import AuthError
from .log import logger

_DONE_PAGE = """\
<!doctype html>
<html><head><meta charset="utf-8"><title>Smart Bookmark</title></head>
<body style="font-family: sans-serif; text-align: center; margin-top: 4em">
<h1>{heading}</h1><p>{body}</p>
</body></html>
"""


class OAuthCallbackServer:
    """Serve ``/auth/callback`` until a code (or an error) arrives."""

    def __init__(self, host: str = "127.0.0.1", port: int = 54321) -> None:
        self.host = host
        self.port = port
        self.code: str | None = None
        self.error: str | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._received: asyncio.Event | None = None

    def _deliver(self, code: str, error: str) -> None:
        if code:
            self.code = code
        else:
            self.error = error or "Sign-in was cancelled"
        if self._loop is not None and self._received is not None:
            self._loop.call_soon_threadsafe(self._received.set)

    def build_app(self) -> FastAPI:
        app = FastAPI(title="Smart Bookmark sign-in", docs_url=None, redoc_url=None)

        @app.get("/auth/callback", response_class=HTMLResponse)
        async def callback(
            code: str = "", error: str = "", error_description: str = ""
        ) -> HTMLResponse:
            self._deliver(code, error_description or error)
            if code:
                page = _DONE_PAGE.format(
                    heading="Signed in",
                    body="You can close this tab and return to the terminal.",
                )
                return HTMLResponse(page)
            page = _DONE_PAGE.format(
                heading="Sign-in failed",
                body=html.escape(error_description or error),
            )
            return HTMLResponse(page, status_code=400)

        return app

    async def wait_for_code(self, timeout: float = 300.0) -> str:
        """Run the server until the redirect arrives; return the code.

        Raises :class:`AuthError` on a provider error or after *timeout*.
        """
        # Bind ourselves so a busy port surfaces as an error here instead of
        # uvicorn calling sys.exit() inside the task.
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as exc:
            sock.close()
            raise AuthError(
                f"Cannot listen on {self.host}:{self.port} for sign-in: {exc}"
            ) from exc

        self._loop = asyncio.get_running_loop()
        self._received = asyncio.Event()
        config = uvicorn.Config(
            self.build_app(),
            host=self.host,
            port=self.port,
            log_level="warning",
            lifespan="off",
        )
        server = uvicorn.Server(config)
        serve_task = asyncio.create_task(server.serve(sockets=[sock]))
        logger.info("Waiting for OAuth callback on %s:%d", self.host, self.port)
        try:
            await asyncio.wait_for(self._received.wait(), timeout)
        except asyncio.TimeoutError as exc:
            raise AuthError("Timed out waiting for browser sign-in") from exc
        finally:
            server.should_exit = True
            await serve_task
            sock.close()
        if self.code is None:
            raise AuthError(self.error or "Sign-in was cancelled")
        return self.code
