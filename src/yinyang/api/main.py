"""Yinyang admin - FastAPI Application.

This module defines the FastAPI ``app`` instance, the JSON API routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`yinyang.core.config.config`
  (``YINYANG_*`` environment variables).
- **Records** are read through a :class:`~yinyang.core.record_store.SQLiteRecordStore`
  opened once at startup.
- **Chains** are served by one :class:`~yinyang.core.chain_cache.ChainCache`
  per process, stored on ``app.state`` and shared by every request.
- **Responses** are plain JSON; rendering is left to the client.
- **Origins**: a request whose ``Origin`` header is not in
  ``allowed_origins`` is refused with 405. Requests without the header
  (server-side callers) pass.

Endpoints
---------
========  ==========================  =======================================
Method    Path                        Purpose
========  ==========================  =======================================
GET       ``/api/chains``             Lineage chains (cached)
POST      ``/api/chains/invalidate``  Drop the cached chains
GET       ``/api/inputs``             Distinct input image URLs
POST      ``/api/inputs/lookup``      Output pairs for one input image
GET       ``/api/stats``              Store and cache statistics
========  ==========================  =======================================

Usage
-----
CLI (installed entry point)::

    yinyang-admin

Direct invocation::

    python -m yinyang.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from yinyang import __version__
from yinyang.api.models import (
    ChainsResponse,
    InputLookupRequest,
    InputLookupResponse,
    InputUrlsResponse,
    StatsResponse,
    VariantPairModel,
)
from yinyang.core.chain_cache import ChainCache
from yinyang.core.config import YinyangConfig, config
from yinyang.core.errors import RecordStoreUnavailable
from yinyang.core.input_listing import list_distinct_input_urls, lookup_input_url
from yinyang.core.record_store import SQLiteRecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _store(request: Request) -> SQLiteRecordStore:
    return request.app.state.record_store


def _config(request: Request) -> YinyangConfig:
    return request.app.state.config


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/chains", response_model=ChainsResponse)
def get_chains(request: Request) -> ChainsResponse:
    """Return every lineage chain in the record store.

    Served from the process-wide :class:`ChainCache`; a reconstruction pass
    only runs when the distinct request count changed. A store outage is not
    an error here: the response carries the last good chains flagged
    ``stale``, or no chains flagged ``unavailable``.
    """
    cache: ChainCache = request.app.state.chain_cache
    return ChainsResponse.from_result(cache.get())


@router.post("/chains/invalidate")
def invalidate_chains(request: Request) -> dict:
    """Force the next ``GET /api/chains`` to run a reconstruction pass."""
    cache: ChainCache = request.app.state.chain_cache
    cache.invalidate()
    return {"success": True}


@router.get("/inputs", response_model=InputUrlsResponse)
def get_input_urls(request: Request) -> InputUrlsResponse:
    """Return the distinct input image URLs, most recent first.

    Raises:
        HTTPException: 503 if the record store is unavailable.
    """
    try:
        urls = list_distinct_input_urls(_store(request))
    except RecordStoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return InputUrlsResponse(total=len(urls), input_urls=urls)


@router.post("/inputs/lookup", response_model=InputLookupResponse)
def lookup_input(req: InputLookupRequest, request: Request) -> InputLookupResponse:
    """Return the good/bad output URLs of every request made from an input.

    Args:
        req: Validated :class:`InputLookupRequest` payload.

    Raises:
        HTTPException: 503 if the record store is unavailable.
    """
    cfg = _config(request)
    try:
        pairs = lookup_input_url(
            _store(request),
            req.input_url,
            image_host=cfg.image_host,
            workers=cfg.fetch_workers,
            timeout=cfg.fetch_timeout,
        )
    except RecordStoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return InputLookupResponse(
        input_url=req.input_url,
        results=[VariantPairModel.from_pair(p) for p in pairs],
    )


@router.get("/stats", response_model=StatsResponse)
def get_stats(request: Request) -> StatsResponse:
    """Return store counts and the cache's current signal.

    Raises:
        HTTPException: 503 if the record store is unavailable.
    """
    store = _store(request)
    cfg = _config(request)
    cache: ChainCache = request.app.state.chain_cache
    try:
        distinct_requests = store.count_distinct_requests()
        distinct_inputs = len(store.list_distinct_input_urls())
    except RecordStoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return StatsResponse(
        distinct_requests=distinct_requests,
        distinct_inputs=distinct_inputs,
        cached_signal=cache.signal,
        chain_policy=cfg.chain_policy,
        admin_api_host=cfg.admin_api_host,
    )


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(app_config: YinyangConfig | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_config: Configuration to use. Defaults to the global ``config``.

    Returns:
        The configured application. The record store and chain cache are
        created by the lifespan handler on startup.
    """
    cfg = app_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # --- Startup -------------------------------------------------------
        app.state.config = cfg
        app.state.record_store = SQLiteRecordStore(cfg.database_path)
        app.state.chain_cache = ChainCache(app.state.record_store, cfg)
        logger.info(f"Chain cache ready (policy {cfg.chain_policy}, image host {cfg.image_host}).")

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        logger.info("Admin API shutting down.")

    app = FastAPI(
        title="Yinyang Admin",
        description="Administrative reporting over image-generation requests.",
        version=__version__,
        lifespan=lifespan,
    )

    # Only the configured admin front-ends get CORS headers.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        client = request.client.host if request.client else "unknown"
        origin = request.headers.get("origin")
        if origin is not None and origin not in cfg.allowed_origins:
            logger.warning(f"[{client} / {origin}] Disallowed origin: {origin}")
            return Response(status_code=405)

        logger.info(f"[{client} / {origin or '-'}] {request.method} {request.url.path}")
        return await call_next(request)

    app.include_router(router)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~yinyang.core.config.config`
    (``YINYANG_SERVER_HOST``, ``YINYANG_SERVER_PORT``, ``YINYANG_LOG_LEVEL``).

    This function is registered as the ``yinyang-admin`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "yinyang.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
