"""FastAPI server for the Smart Bookmark web frontend."""

from __future__ import annotations

import asyncio
import html
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from ..backend.base import AuthError, StoreError
from ..config import Config
from ..controller import BookmarkListController
from ..models import Bookmark
from ..session_client import DASHBOARD_VIEW, LANDING_VIEW, SessionClient

logger = logging.getLogger(__name__)

_HERE = Path(__file__).parent
_TEMPLATES = _HERE / "templates"

_VIEW_PATHS = {LANDING_VIEW: "/", DASHBOARD_VIEW: "/dashboard"}


def _render(name: str, **values: str) -> str:
    page = (_TEMPLATES / name).read_text(encoding="utf-8")
    for key, value in values.items():
        page = page.replace("{{" + key + "}}", html.escape(value))
    return page


def create_app(backend: Any = None, config: Config | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Without *backend* the Supabase client is connected on startup, on the
    server's own event loop.
    """
    config = config or Config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.backend is None:
            from ..backend.supabase_backend import SupabaseBackend

            app.state.backend = await SupabaseBackend.connect(config)
        yield

    app = FastAPI(title="Smart Bookmark", lifespan=lifespan)
    app.state.backend = backend

    def sessions_for(
        conn: Request | WebSocket, navigate: Any = None
    ) -> SessionClient:
        return SessionClient(
            conn.app.state.backend,
            provider=config.auth.provider,
            redirect_to=str(conn.url_for("auth_callback")),
            navigate=navigate,
        )

    # ── Pages ───────────────────────────────────────────────────

    @app.get("/", response_class=HTMLResponse, response_model=None)
    async def index(request: Request) -> HTMLResponse | RedirectResponse:
        """Landing page; signed-in users go straight to the dashboard."""
        if await sessions_for(request).get_session() is not None:
            return RedirectResponse("/dashboard", status_code=303)
        return HTMLResponse(content=_render("landing.html"))

    @app.get("/dashboard", response_class=HTMLResponse, response_model=None)
    async def dashboard(request: Request) -> HTMLResponse | RedirectResponse:
        session = await sessions_for(request).get_session()
        if session is None:
            return RedirectResponse("/", status_code=303)
        email = session.email or session.user_id
        return HTMLResponse(
            content=_render("dashboard.html", email=email, initial=email[:1].upper())
        )

    # ── Auth ────────────────────────────────────────────────────

    @app.get("/auth/sign-in")
    async def sign_in(request: Request) -> RedirectResponse:
        """Redirect the browser to the OAuth provider."""
        sessions = sessions_for(request)
        try:
            url = await request.app.state.backend.sign_in_with_provider(
                sessions.provider, sessions.redirect_to
            )
        except AuthError as exc:
            logger.warning("Could not start sign-in: %s", exc)
            return RedirectResponse("/", status_code=303)
        return RedirectResponse(url, status_code=303)

    @app.get("/auth/callback", name="auth_callback")
    async def auth_callback(request: Request, code: str = "") -> RedirectResponse:
        if not code:
            return RedirectResponse("/", status_code=303)
        try:
            await sessions_for(request).complete_sign_in(code)
        except AuthError as exc:
            logger.warning("Code exchange failed: %s", exc)
            return RedirectResponse("/", status_code=303)
        return RedirectResponse("/dashboard", status_code=303)

    @app.post("/auth/sign-out")
    async def sign_out(request: Request) -> RedirectResponse:
        """Sign out; the browser always ends up on the landing page."""
        targets: list[str] = []

        def navigate(view: str, refresh: bool = False) -> None:
            targets.append(_VIEW_PATHS.get(view, "/"))

        await sessions_for(request, navigate).sign_out()
        return RedirectResponse(targets[-1] if targets else "/", status_code=303)

    # ── API ─────────────────────────────────────────────────────

    @app.get("/api/bookmarks")
    async def list_bookmarks(request: Request) -> JSONResponse:
        """The signed-in user's bookmarks, newest first."""
        session = await sessions_for(request).get_session()
        if session is None:
            return JSONResponse({"error": "not signed in"}, status_code=401)
        try:
            records = await request.app.state.backend.select_all_for_owner(
                session.user_id
            )
        except StoreError as exc:
            return JSONResponse({"error": str(exc)}, status_code=502)
        bookmarks = []
        for record in records:
            try:
                bookmarks.append(Bookmark.from_record(record).to_dict())
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed record %r", record, exc_info=True)
        return JSONResponse({"bookmarks": bookmarks})

    # ── Live list ───────────────────────────────────────────────

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None:
        """Per-connection controller; every state change is pushed."""
        await ws.accept()
        sessions = sessions_for(ws)
        session = await sessions.get_session()
        if session is None:
            await ws.send_json({"type": "error", "error": "not signed in"})
            await ws.close(code=4401)
            return

        controller = BookmarkListController(
            ws.app.state.backend,
            sessions,
            session.user_id,
            table=config.backend.table,
            retry_delay=config.realtime.retry_delay,
            max_attempts=config.realtime.max_attempts,
        )
        outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        controller.add_listener(
            lambda c: outbox.put_nowait({"type": "state", **c.as_dict()})
        )

        async def pump() -> None:
            while True:
                await ws.send_json(await outbox.get())

        sender = asyncio.create_task(pump())
        actions: set[asyncio.Task] = set()

        def spawn(coro: Any) -> None:
            # Actions interleave; none of them holds up the receive loop.
            task = asyncio.create_task(coro)
            actions.add(task)
            task.add_done_callback(actions.discard)

        try:
            await controller.refresh()
            outbox.put_nowait({"type": "state", **controller.as_dict()})
            await controller.mount()

            # Message loop
            while True:
                data = await ws.receive_json()
                if not isinstance(data, dict):
                    logger.debug("Ignoring non-object WebSocket message: %r", data)
                    continue
                msg_type = data.get("type", "")

                if msg_type == "add":
                    spawn(
                        controller.add(
                            str(data.get("title", "")), str(data.get("url", ""))
                        )
                    )
                elif msg_type == "delete":
                    bookmark_id = str(data.get("id", ""))
                    if bookmark_id:
                        spawn(controller.delete(bookmark_id))
                elif msg_type == "refresh":
                    spawn(controller.refresh())
                elif msg_type == "ping":
                    outbox.put_nowait({"type": "pong"})
                else:
                    logger.debug("Unknown WebSocket message type: %s", msg_type)

        except WebSocketDisconnect:
            logger.info("WebSocket client disconnected")
        except Exception:
            logger.exception("WebSocket error")
        finally:
            for task in list(actions):
                task.cancel()
            await controller.unmount()
            sender.cancel()

    return app
