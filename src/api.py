"""Read API over the published resource snapshot."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from . import config
from .models import ResourcePage
from .pipeline import Refresher
from .query import query_resources
from .ratelimit import FixedWindowRateLimiter
from .scheduler import build_scheduler
from .sources.multi_source import load_sources

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome to the Ontario Legal Resources API!"


def create_app(
    refresher: Optional[Refresher] = None,
    *,
    start_scheduler: bool = True,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
) -> FastAPI:
    if rate_limiter is None:
        rate_limiter = FixedWindowRateLimiter(config.RATE_LIMIT_MAX, config.RATE_LIMIT_WINDOW_SECONDS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.refresher is None:
            app.state.refresher = Refresher.from_config(load_sources())
        scheduler = None
        if start_scheduler:
            scheduler = build_scheduler(app.state.refresher)
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)

    app = FastAPI(title="Ontario Legal Resources API", lifespan=lifespan)
    app.state.refresher = refresher

    @app.middleware("http")
    async def limit_requests(request: Request, call_next):
        client = request.client.host if request.client else "unknown"
        if not rate_limiter.hit(client):
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests, please try again later."},
            )
        return await call_next(request)

    # outermost: 429 responses carry CORS headers too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root() -> dict:
        return {"message": WELCOME_MESSAGE}

    @app.get("/resources", response_model=ResourcePage)
    @app.get("/api/resources", response_model=ResourcePage, include_in_schema=False)
    def list_resources(
        request: Request,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        keyword: Optional[str] = None,
    ):
        # Query params stay strings so malformed values get coerced, not 422'd
        try:
            snapshot = request.app.state.refresher.snapshot()
            return query_resources(snapshot, page=page, limit=limit, keyword=keyword)
        except Exception as e:
            logger.exception("Error fetching resources: %s", e)
            return JSONResponse(status_code=500, content={"error": "Failed to fetch legal resources"})

    return app
