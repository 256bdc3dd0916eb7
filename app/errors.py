from __future__ import annotations


class QuoteFetchError(Exception):
    """Base class for upstream quote provider failures."""


class UpstreamStatusError(QuoteFetchError):
    def __init__(self, status_code: int, host: str, body_snippet: str = "") -> None:
        self.status_code = int(status_code)
        self.host = host
        self.body_snippet = (body_snippet or "")[:200]
        super().__init__(
            f"upstream={self.status_code} host={self.host} body_snip={self.body_snippet}"
        )


class UpstreamTransportError(QuoteFetchError):
    pass


class QuoteParseError(QuoteFetchError):
    pass


class NoRowsError(QuoteFetchError):
    def __init__(self, detail: str = "no usable quotes") -> None:
        super().__init__(detail)


class DatabaseError(Exception):
    pass


class ConfigInvalidError(ValueError):
    pass
