from __future__ import annotations

import math
import sys
from typing import Any, Optional
from urllib.parse import urljoin, urlsplit

import requests

from app.errors import NoRowsError, QuoteFetchError, UpstreamStatusError, UpstreamTransportError
from app.schemas.quote import Quote, normalize_symbols, percent_change

_MIN_COLUMNS = 8  # Symbol,Date,Time,Open,High,Low,Close,Volume
_COL_SYMBOL = 0
_COL_OPEN = 3
_COL_CLOSE = 6


def _log(event: str, detail: str) -> None:
    print(f"[STOOQ][{event}] {detail}", file=sys.stderr, flush=True)


def _to_finite_float(value: str, *, field_name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid numeric value for {field_name}: {value!r}") from exc
    if not math.isfinite(parsed):
        raise ValueError(f"non-finite value for {field_name}: {value!r}")
    return parsed


def parse_row(line: str) -> Quote | None:
    """Parse one stooq CSV data row; returns None for rows that carry no quote."""
    cols = line.split(",")
    if len(cols) < _MIN_COLUMNS:
        return None

    raw_symbol = cols[_COL_SYMBOL].strip()
    short_symbol = raw_symbol.split(".", 1)[0]
    if not short_symbol:
        return None

    try:
        open_price = _to_finite_float(cols[_COL_OPEN], field_name="open")
        close = _to_finite_float(cols[_COL_CLOSE], field_name="close")
    except ValueError as exc:
        _log("row_skip", f"symbol={raw_symbol} reason={exc}")
        return None

    change = close - open_price
    return Quote(
        symbol=short_symbol,
        name=raw_symbol,
        price=close,
        change=change,
        percent=percent_change(change, open_price),
    )


def parse_csv(body: str) -> list[Quote]:
    rows: list[Quote] = []
    header = True
    for line in body.splitlines():
        line = line.replace("\r", "").replace("\n", "")
        if not line:
            continue
        if header:
            header = False
            continue
        quote = parse_row(line)
        if quote is not None:
            rows.append(quote)
    return rows


class StooqClient:
    """Stooq CSV quote client: plain HTTP first, one redirect hop, per-symbol HTTPS fallback."""

    name = "STOOQ"
    _HOST = "stooq.com"
    _HEADERS = {"User-Agent": "Mozilla/5.0", "Accept": "text/csv"}

    def __init__(
        self,
        *,
        session: Optional[Any] = None,
        timeout: float = 10.0,
        host: str | None = None,
    ) -> None:
        self.session = session or requests
        self.timeout = timeout
        self.host = host or self._HOST

    @staticmethod
    def build_target(symbols: list[str]) -> str:
        query = ",".join(f"{s}.US" for s in symbols)
        return f"/q/l/?s={query}&f=sd2t2ohlcv&h&e=csv"

    def _get(self, url: str, *, verify: bool = True) -> Any:
        try:
            return self.session.get(
                url,
                headers=dict(self._HEADERS),
                timeout=self.timeout,
                allow_redirects=False,
                verify=verify,
            )
        except requests.RequestException as exc:
            raise UpstreamTransportError(f"host={urlsplit(url).hostname} error={exc}") from exc

    def fetch_batch(self, symbols: list[str]) -> Any:
        target = self.build_target(symbols)
        url = f"http://{self.host}{target}"
        _log("fetch", f"symbols={','.join(symbols)}")
        response = self._get(url)
        _log("initial_status", f"status={response.status_code}")

        if response.status_code in (301, 302):
            location = response.headers.get("Location")
            if location:
                url = urljoin(url, location)
                _log("redirect", f"location={url}")
            else:
                url = f"https://{self.host}{target}"
                _log("redirect", "no location header, retrying over https")
            response = self._get(url)

        body = response.text or ""
        _log("final_status", f"status={response.status_code} length={len(body)}")
        if response.status_code != 200:
            host = urlsplit(url).hostname or self.host
            raise UpstreamStatusError(response.status_code, host, body)
        return response

    def fetch_single(self, symbol: str) -> Quote | None:
        url = f"https://{self.host}{self.build_target([symbol])}"
        response = self._get(url)
        if response.status_code != 200:
            raise UpstreamStatusError(response.status_code, self.host, response.text or "")
        rows = parse_csv(response.text or "")
        return rows[-1] if rows else None

    def fetch_quotes(self, symbols: list[str]) -> list[Quote]:
        requested = normalize_symbols(symbols)
        response = self.fetch_batch(requested)
        body = response.text or ""

        parsed = parse_csv(body)
        _log("parsed_rows", f"count={len(parsed)}")
        if not parsed:
            _log("empty_body", f"body={body[:500]!r}")

        # rows are matched on the full stooq name so dotted tickers (BRK.B) line up
        by_name: dict[str, Quote] = {}
        for quote in parsed:
            by_name.setdefault(quote.name.upper(), quote)
            by_name.setdefault(quote.symbol.upper(), quote)

        by_symbol: dict[str, Quote] = {}
        for symbol in requested:
            quote = by_name.get(f"{symbol}.US") or by_name.get(symbol)
            if quote is not None:
                by_symbol[symbol] = quote
                continue
            try:
                quote = self.fetch_single(symbol)
            except QuoteFetchError as exc:
                _log("single_fetch_error", f"symbol={symbol} error={exc}")
                continue
            if quote is not None:
                by_symbol[symbol] = quote

        any_non_zero = any(q.price != 0.0 for q in by_symbol.values())
        ordered: list[Quote] = []
        for symbol in requested:
            quote = by_symbol.get(symbol)
            if quote is None:
                continue
            if any_non_zero and quote.price == 0.0:
                continue
            ordered.append(quote)

        if not ordered:
            raise NoRowsError("stooq_no_rows_after_fallback")
        return ordered
