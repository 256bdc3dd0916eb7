from __future__ import annotations

import sys
from typing import Any, Optional
from urllib.parse import urlsplit

import requests
from pydantic import ValidationError

from app.errors import NoRowsError, QuoteParseError, UpstreamStatusError, UpstreamTransportError
from app.schemas.quote import Quote, normalize_symbols

DEFAULT_SCRAPER_HOST = "localhost"
DEFAULT_SCRAPER_PORT = 9000


def parse_scraper_url(scraper_url: str) -> tuple[str, int]:
    """Return (host, port) of an ``http://host[:port]`` scraper URL."""
    parts = urlsplit(scraper_url or "")
    if parts.scheme != "http":
        return DEFAULT_SCRAPER_HOST, DEFAULT_SCRAPER_PORT
    try:
        port = parts.port
    except ValueError:
        port = None
    return parts.hostname or DEFAULT_SCRAPER_HOST, port or DEFAULT_SCRAPER_PORT


class Trading212ScraperClient:
    """Client for the local Trading212 scraper service; its quotes are served as-is."""

    name = "TRADING212"

    def __init__(
        self,
        scraper_url: str = "http://localhost:9000",
        *,
        session: Optional[Any] = None,
        timeout: float = 10.0,
    ) -> None:
        self.host, self.port = parse_scraper_url(scraper_url)
        self.session = session or requests
        self.timeout = timeout

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def fetch_quotes(self, symbols: list[str]) -> list[Quote]:
        requested = ",".join(normalize_symbols(symbols))
        print(f"[TRADING212][fetch] scraper={self.base_url} symbols={requested}", file=sys.stderr, flush=True)
        try:
            response = self.session.get(
                f"{self.base_url}/quotes",
                params={"symbols": requested},
                headers={
                    "Host": f"{self.host}:{self.port}",
                    "User-Agent": "exchange-backend/1.0",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamTransportError(f"host={self.host}:{self.port} error={exc}") from exc

        if response.status_code != 200:
            raise UpstreamStatusError(response.status_code, self.host, response.text or "")

        try:
            payload = response.json()
        except ValueError as exc:
            raise QuoteParseError(f"scraper returned invalid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise QuoteParseError("scraper response must be a JSON array")

        try:
            quotes = [Quote.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise QuoteParseError(f"scraper returned malformed quote: {exc}") from exc

        print(f"[TRADING212][received] count={len(quotes)}", file=sys.stderr, flush=True)
        if not quotes:
            raise NoRowsError("scraper returned no quotes")
        return quotes
