import sys
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from app.errors import DatabaseError
from app.integrations.orders_db import OrderBookRepository

router = APIRouter()

_ANY_METHOD = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS', 'HEAD']


def _now() -> float:
    return time.monotonic()


def _order_book(request: Request) -> OrderBookRepository:
    repo = getattr(request.app.state, 'order_book', None)
    if repo is None:
        repo = OrderBookRepository(dsn=request.app.state.get_settings().DATABASE_URL)
    return repo


@router.get('/stocks')
def get_stocks(request: Request):
    settings = request.app.state.get_settings()
    ready, snapshot, published_at = request.app.state.quote_cache.read()
    if not ready:
        return JSONResponse(
            status_code=503,
            content={'error': 'initializing', 'message': 'Stock data not yet available'},
        )

    age = max(int(_now() - published_at), 0)
    headers = {
        'X-Data-Age-Seconds': str(age),
        'X-Data-Refresh-Seconds': str(settings.STOCKS_REFRESH_SECONDS),
        'X-Data-Symbols': settings.STOCKS_SYMBOLS_CFG,
        'X-Data-Provider': settings.STOCKS_PROVIDER,
    }
    if age > settings.STOCKS_REFRESH_SECONDS * 2:
        headers['X-Data-Stale'] = 'true'
    return JSONResponse(content=[q.model_dump() for q in snapshot], headers=headers)


@router.get('/orderbook')
def get_orderbook(request: Request):
    try:
        rows = _order_book(request).list_orders()
    except DatabaseError as exc:
        print(f"[ORDERBOOK][db_error] {exc}", file=sys.stderr, flush=True)
        return Response(
            content=f'Database error: {exc}',
            status_code=500,
            headers={'Content-Type': 'text/plain'},
        )
    return JSONResponse(content=[r.model_dump() for r in rows])


@router.api_route('/{path:path}', methods=_ANY_METHOD)
def fallback(path: str):
    return Response(content='Hello, world!', headers={'Content-Type': 'text/plain'})
