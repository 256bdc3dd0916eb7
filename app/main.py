from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.api.routes import router
from app.config.settings import get_settings
from app.services.quote_cache import quote_cache
from app.services.quote_providers import build_quote_fetcher
from app.services.quote_refresher import QuoteRefresher

SERVER_TOKEN = "exchange-backend"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.get_settings()
    fetcher = app.state.quote_fetcher or build_quote_fetcher(settings)
    refresher = QuoteRefresher(
        cache=app.state.quote_cache,
        fetcher=fetcher,
        symbols=settings.STOCKS_SYMBOLS,
        refresh_seconds=settings.STOCKS_REFRESH_SECONDS,
    )
    app.state.quote_refresher = refresher
    refresher.start()

    try:
        yield
    finally:
        refresher.stop()


# every path outside the router answers with the plain greeting, docs included
app = FastAPI(
    title="Exchange Backend",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)
app.include_router(router)


@app.middleware("http")
async def stamp_common_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["Server"] = SERVER_TOKEN
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


# NOTE: lazy-loaded so app import does not require env during tests.
app.state.get_settings = get_settings
app.state.quote_cache = quote_cache
app.state.quote_fetcher = None
app.state.quote_refresher = None
app.state.order_book = None
