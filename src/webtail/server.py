"""FastAPI application: browsing pages and the SSE tail endpoint."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.responses import HTMLResponse, StreamingResponse
from starlette.background import BackgroundTask

from . import __version__, pages
from .config import ServerConfig
from .errors import PathRejected
from .sandbox import Sandbox
from .session import TailRegistry, TailSession, TailSettings

log = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def build_router(sandbox: Sandbox, registry: TailRegistry, settings: TailSettings) -> APIRouter:
    """Routes bound to one sandbox and registry; nothing is module-global."""
    router = APIRouter()

    @router.get("/", response_class=HTMLResponse)
    @router.get("/dir", response_class=HTMLResponse)
    async def listing(path: str = "") -> HTMLResponse:
        rel = sandbox.listing_dir(path)
        log.info("list %s", rel)
        try:
            entries = sandbox.entries(rel)
        except OSError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e
        return HTMLResponse(pages.listing_page(entries))

    @router.get("/file", response_class=HTMLResponse)
    async def watch(path: str = "") -> HTMLResponse:
        try:
            sandbox.tail_target(path)
        except PathRejected as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return HTMLResponse(pages.watch_page(sandbox.clean(path)))

    @router.get("/tail")
    async def tail(
        file: str = "",
        left: str = "",
        right: str = "",
        follow: bool = True,
    ) -> StreamingResponse:
        try:
            path = sandbox.tail_target(file)
        except PathRejected as e:
            raise HTTPException(status_code=e.status_code, detail=str(e)) from e

        log.info("tail %s (follow=%s)", path, follow)
        try:
            session = await TailSession.open(
                path,
                follow=follow,
                settings=settings,
                left=left,
                right=right,
                registry=registry,
            )
        except OSError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e

        return StreamingResponse(
            session.stream(),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
            background=BackgroundTask(session.close),
        )

    @router.get("/healthz")
    async def healthz() -> dict:
        return {"status": "ok", "root": str(sandbox.root), "tails": len(registry)}

    return router


def create_app(config: ServerConfig, registry: TailRegistry | None = None) -> FastAPI:
    """Build the application for one served root."""
    registry = registry if registry is not None else TailRegistry()
    sandbox = Sandbox(config.root)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("WebTail serving %s", sandbox.root)
        yield
        registry.cancel_all()
        log.info("WebTail shutting down")

    app = FastAPI(title="WebTail", version=__version__, lifespan=lifespan)
    app.state.sandbox = sandbox
    app.state.registry = registry
    app.include_router(build_router(sandbox, registry, config.tail))
    return app


class TailServer(uvicorn.Server):
    """uvicorn server that stops every live tail when asked to exit.

    Event streams never end on their own, so a graceful shutdown would wait
    on them forever; cancelling their tokens lets each response finish.
    """

    def __init__(self, config: uvicorn.Config, registry: TailRegistry):
        super().__init__(config)
        self.registry = registry
        self._loop: asyncio.AbstractEventLoop | None = None

    async def serve(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets=sockets)

    def handle_exit(self, sig, frame) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.registry.cancel_all)
        super().handle_exit(sig, frame)


def run_server(config: ServerConfig) -> None:
    """Serve ``config.root`` until interrupted."""
    registry = TailRegistry()
    app = create_app(config, registry)
    address = config.address
    uv_config = uvicorn.Config(
        app,
        host=address.host or "127.0.0.1",
        port=address.port or 8080,
        uds=address.uds,
        log_level=config.log_level.lower(),
        log_config=None,
    )
    TailServer(uv_config, registry).run()
