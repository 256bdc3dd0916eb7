from __future__ import annotations

from typing import Any, Optional

from app.config.settings import Settings
from app.integrations.stooq import StooqClient
from app.integrations.trading212 import Trading212ScraperClient
from app.integrations.yahoo import YahooFinanceClient


def build_quote_fetcher(settings: Settings, *, session: Optional[Any] = None):
    """Return the fetcher for the configured provider.

    Every fetcher exposes ``name`` and ``fetch_quotes(symbols) -> list[Quote]``.
    """
    provider = settings.STOCKS_PROVIDER
    timeout = settings.http_timeout
    if provider == "STOOQ":
        return StooqClient(session=session, timeout=timeout)
    if provider == "YAHOO":
        return YahooFinanceClient(
            session=session,
            timeout=timeout,
            allow_insecure_tls=settings.STOCKS_ALLOW_INSECURE_TLS,
        )
    if provider == "TRADING212":
        return Trading212ScraperClient(settings.SCRAPER_URL, session=session, timeout=timeout)
    raise ValueError(f"unknown provider: {provider}")
