import os
import sys
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict

from app.errors import ConfigInvalidError
from app.schemas.quote import normalize_symbols

Provider = Literal["STOOQ", "YAHOO", "TRADING212"]

PROVIDERS: tuple[str, ...] = ("STOOQ", "YAHOO", "TRADING212")
DEFAULT_SYMBOLS_CFG = "AAPL,MSFT,TSLA,AMZN,GOOG"
MIN_REFRESH_SECONDS = 5
_TRUTHY = {"1", "true", "yes", "on"}


def _warn(name: str, detail: str) -> None:
    print(f"[CONFIG][invalid_env] name={name} {detail}", file=sys.stderr, flush=True)


def _parse_int(name: str, raw: str, *, low: int | None = None, high: int | None = None) -> int:
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigInvalidError(f"{name} is not an integer: {raw!r}") from exc
    if (low is not None and value < low) or (high is not None and value > high):
        raise ConfigInvalidError(f"{name} out of range: {value}")
    return value


def _parse_positive_float(name: str, raw: str) -> float:
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ConfigInvalidError(f"{name} is not a number: {raw!r}") from exc
    if not value > 0:
        raise ConfigInvalidError(f"{name} must be positive: {value}")
    return value


def _header_safe(value: str) -> bool:
    if not value.isprintable():
        return False
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    PORT: int = 8080
    STOCKS_REFRESH_SECONDS: int = 60
    STOCKS_SYMBOLS: list[str] = normalize_symbols(DEFAULT_SYMBOLS_CFG)
    STOCKS_SYMBOLS_CFG: str = DEFAULT_SYMBOLS_CFG
    STOCKS_PROVIDER: Provider = "STOOQ"
    SCRAPER_URL: str = "http://localhost:9000"
    DATABASE_URL: str = "dbname=exchange user=leonmamic"
    STOCKS_ALLOW_INSECURE_TLS: bool = False
    STOCKS_HTTP_TIMEOUT_SECONDS: float = 10.0

    @property
    def http_timeout(self) -> float:
        return min(self.STOCKS_HTTP_TIMEOUT_SECONDS, float(self.STOCKS_REFRESH_SECONDS))

    @classmethod
    def from_env(cls) -> "Settings":
        values: dict = {}

        raw_port = os.getenv("PORT")
        if raw_port is not None:
            try:
                values["PORT"] = _parse_int("PORT", raw_port, low=1, high=65535)
            except ConfigInvalidError as exc:
                _warn("PORT", f"error={exc} using default {cls.model_fields['PORT'].default}")

        raw_refresh = os.getenv("STOCKS_REFRESH_SECONDS")
        if raw_refresh is not None:
            try:
                refresh = _parse_int("STOCKS_REFRESH_SECONDS", raw_refresh)
                values["STOCKS_REFRESH_SECONDS"] = max(MIN_REFRESH_SECONDS, refresh)
            except ConfigInvalidError as exc:
                _warn(
                    "STOCKS_REFRESH_SECONDS",
                    f"error={exc} using default {cls.model_fields['STOCKS_REFRESH_SECONDS'].default}",
                )

        raw_symbols = os.getenv("STOCKS_SYMBOLS", "")
        symbols = normalize_symbols(raw_symbols)
        if symbols and not _header_safe(",".join(symbols)):
            _warn(
                "STOCKS_SYMBOLS",
                f"error=unsupported characters in {raw_symbols!r} using default {DEFAULT_SYMBOLS_CFG}",
            )
        elif symbols:
            # the configured string is echoed in X-Data-Symbols
            cfg = raw_symbols.strip()
            values["STOCKS_SYMBOLS"] = symbols
            values["STOCKS_SYMBOLS_CFG"] = cfg if _header_safe(cfg) else ",".join(symbols)

        raw_provider = os.getenv("STOCKS_PROVIDER")
        if raw_provider is not None:
            provider = raw_provider.strip().upper()
            if provider in PROVIDERS:
                values["STOCKS_PROVIDER"] = provider
            else:
                _warn(
                    "STOCKS_PROVIDER",
                    f"error=unknown provider {provider!r} using default "
                    f"{cls.model_fields['STOCKS_PROVIDER'].default}",
                )

        scraper_url = os.getenv("SCRAPER_URL")
        if scraper_url:
            values["SCRAPER_URL"] = scraper_url.strip()

        database_url = os.getenv("DATABASE_URL")
        if database_url:
            values["DATABASE_URL"] = database_url

        raw_insecure = os.getenv("STOCKS_ALLOW_INSECURE_TLS")
        if raw_insecure is not None:
            values["STOCKS_ALLOW_INSECURE_TLS"] = raw_insecure.strip().lower() in _TRUTHY

        raw_timeout = os.getenv("STOCKS_HTTP_TIMEOUT_SECONDS")
        if raw_timeout is not None:
            try:
                values["STOCKS_HTTP_TIMEOUT_SECONDS"] = _parse_positive_float(
                    "STOCKS_HTTP_TIMEOUT_SECONDS", raw_timeout
                )
            except ConfigInvalidError as exc:
                _warn(
                    "STOCKS_HTTP_TIMEOUT_SECONDS",
                    f"error={exc} using default {cls.model_fields['STOCKS_HTTP_TIMEOUT_SECONDS'].default}",
                )

        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
