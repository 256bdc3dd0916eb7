from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

_WHITESPACE = re.compile(r"\s+")


class Quote(BaseModel):
    # scraper payloads may carry extra keys; they are served back verbatim
    model_config = ConfigDict(extra="allow", allow_inf_nan=False, frozen=True)

    symbol: str = Field(min_length=1)
    name: str = ""
    price: float = 0.0
    change: float = 0.0
    percent: float = 0.0


def percent_change(change: float, open_price: float) -> float:
    if open_price == 0:
        return 0.0
    return (change / open_price) * 100.0


def normalize_symbols(raw: str | list[str]) -> list[str]:
    """Split, strip, uppercase and de-duplicate ticker symbols, keeping order."""
    items = raw.split(",") if isinstance(raw, str) else raw
    out: list[str] = []
    seen: set[str] = set()
    for item in items:
        value = _WHITESPACE.sub("", str(item)).upper()
        if not value or value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out
