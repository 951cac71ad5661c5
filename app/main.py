from __future__ import annotations

import argparse
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import Response

from app import admin
from app.config import Settings, settings as default_settings
from app.crawler import CrawlerDetector, is_preview_crawler
from app.db import create_tables, make_engine, make_session_factory, wait_for_database
from app.errors import install_error_handlers
from app.service import RedirectEngine, get_redirect_engine, request_path
from app.store import MappingStore
from app.tasks import DetachedTasks

logger = logging.getLogger(__name__)

ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    settings: Settings | None = None,
    is_crawler: CrawlerDetector = is_preview_crawler,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = make_engine(settings.database_url)
        await wait_for_database(engine, settings.db_connect_attempts)
        # No migrations: tables are created on startup.
        await create_tables(engine)

        if not settings.admin_token:
            logger.warning("no admin token configured, the admin API will reject every request")

        tasks = DetachedTasks()
        store = MappingStore(make_session_factory(engine))
        app.state.tasks = tasks
        app.state.store = store
        app.state.redirect_engine = RedirectEngine(store, tasks, settings.fallback_url, is_crawler)
        try:
            yield
        finally:
            await tasks.shutdown(settings.shutdown_grace_seconds)
            await engine.dispose()

    app = FastAPI(title="Link Redirect", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    install_error_handlers(app)
    app.add_middleware(admin.AdminTokenMiddleware, token=settings.admin_token)

    @app.api_route("/favicon.ico", methods=ANY_METHOD, include_in_schema=False)
    async def favicon() -> Response:
        return Response(status_code=200)

    app.include_router(admin.router)

    @app.api_route("/{path:path}", methods=ANY_METHOD, include_in_schema=False)
    async def handle_request(
        request: Request,
        engine: RedirectEngine = Depends(get_redirect_engine),
    ) -> Response:
        """
        Everything that is not the favicon or the admin API:
        preview page for crawlers, redirect for everybody else.
        """
        return await engine.handle(request_path(request), request.headers.get("user-agent"))

    return app


# uvicorn app.main:app, configured from the environment
app = create_app()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Short link redirector with link-preview support")
    parser.add_argument("--socket", help="path to a unix socket, overrides --host/--port")
    parser.add_argument("--host", help="address to listen on")
    parser.add_argument("--port", type=int, help="port to listen on, ignored if --socket is set")
    parser.add_argument("--db-url", help="database url")
    parser.add_argument("--admin-token", help="admin token")
    parser.add_argument("--fallback-url", help="where unknown paths are redirected")
    parser.add_argument("--log-level", help="logging level")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace, base: Settings = default_settings) -> Settings:
    overrides = {
        "socket_path": args.socket,
        "host": args.host,
        "port": args.port,
        "database_url": args.db_url,
        "admin_token": args.admin_token,
        "fallback_url": args.fallback_url,
        "log_level": args.log_level,
    }
    return replace(base, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None) -> None:
    settings = settings_from_args(parse_args(argv))
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(settings)
    if settings.socket_path:
        logger.info("listening on unix socket %s", settings.socket_path)
        uvicorn.run(app, uds=settings.socket_path, log_config=None)
    else:
        logger.info("listening on %s:%d", settings.host, settings.port)
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
