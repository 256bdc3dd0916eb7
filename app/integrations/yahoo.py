from __future__ import annotations

import sys
from typing import Any, Optional

import requests
from pydantic import ValidationError

from app.errors import (
    NoRowsError,
    QuoteFetchError,
    QuoteParseError,
    UpstreamStatusError,
    UpstreamTransportError,
)
from app.schemas.quote import Quote, normalize_symbols


def _to_float_default(value: Any, default: float = 0.0) -> float:
    try:
        if value is None or value == "":
            return default
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_quote_response(payload: Any) -> list[Quote]:
    """Extract quotes from a v7 ``quoteResponse`` payload."""
    try:
        results = payload["quoteResponse"]["result"]
    except (KeyError, TypeError) as exc:
        raise QuoteParseError(f"missing quoteResponse.result: {exc}") from exc
    if not isinstance(results, list):
        raise QuoteParseError("quoteResponse.result must be an array")

    out: list[Quote] = []
    for stock in results:
        if not isinstance(stock, dict):
            continue
        symbol = str(stock.get("symbol") or "").strip()
        if not symbol:
            continue
        try:
            out.append(
                Quote(
                    symbol=symbol,
                    name=str(stock.get("shortName") or ""),
                    price=_to_float_default(stock.get("regularMarketPrice")),
                    change=_to_float_default(stock.get("regularMarketChange")),
                    percent=_to_float_default(stock.get("regularMarketChangePercent")),
                )
            )
        except ValidationError as exc:
            raise QuoteParseError(f"invalid quote for {symbol}: {exc}") from exc
    return out


class YahooFinanceClient:
    """Yahoo v7 quote client with a host/TLS retry cascade."""

    name = "YAHOO"
    _PRIMARY_HOST = "query1.finance.yahoo.com"
    _ALTERNATE_HOST = "query2.finance.yahoo.com"
    _HEADERS = {
        "User-Agent": "Mozilla/5.0 (Macintosh) AppleWebKit/537.36 Chrome Safari",
        "Accept": "application/json,text/plain,*/*",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "identity",
        "Connection": "close",
    }

    def __init__(
        self,
        *,
        session: Optional[Any] = None,
        timeout: float = 10.0,
        allow_insecure_tls: bool = False,
    ) -> None:
        self.session = session or requests
        self.timeout = timeout
        self.allow_insecure_tls = allow_insecure_tls

    def attempts(self) -> list[tuple[str, bool]]:
        """Ordered (host, verify) pairs tried until one succeeds."""
        plan: list[tuple[str, bool]] = []
        for host in (self._PRIMARY_HOST, self._ALTERNATE_HOST):
            plan.append((host, True))
            if self.allow_insecure_tls:
                plan.append((host, False))
        return plan

    def _perform(self, host: str, symbols: list[str], *, verify: bool) -> list[Quote]:
        url = f"https://{host}/v7/finance/quote"
        try:
            response = self.session.get(
                url,
                headers=dict(self._HEADERS),
                params={"symbols": ",".join(symbols)},
                timeout=self.timeout,
                verify=verify,
            )
        except requests.RequestException as exc:
            raise UpstreamTransportError(f"host={host} error={exc}") from exc

        if response.status_code != 200:
            raise UpstreamStatusError(response.status_code, host, response.text or "")
        try:
            payload = response.json()
        except ValueError as exc:
            raise QuoteParseError(f"host={host} invalid JSON: {exc}") from exc
        return parse_quote_response(payload)

    def fetch_quotes(self, symbols: list[str]) -> list[Quote]:
        requested = normalize_symbols(symbols)
        last_error: QuoteFetchError | None = None
        quotes: list[Quote] | None = None
        for host, verify in self.attempts():
            try:
                quotes = self._perform(host, requested, verify=verify)
                break
            except QuoteFetchError as exc:
                last_error = exc
                print(
                    f"[YAHOO][fetch_error] host={host} verify={verify} error={exc}",
                    file=sys.stderr,
                    flush=True,
                )
        if quotes is None:
            raise last_error or NoRowsError("yahoo cascade made no attempts")

        rank = {symbol: idx for idx, symbol in enumerate(requested)}
        quotes.sort(key=lambda q: rank.get(q.symbol.upper(), len(rank)))
        if not quotes:
            raise NoRowsError("yahoo returned no quotes")
        return quotes
