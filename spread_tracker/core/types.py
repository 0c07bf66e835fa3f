"""Shared type aliases and symbol helpers."""
from __future__ import annotations

from typing import Any, Mapping, TypeAlias

JSONLike: TypeAlias = Mapping[str, Any]


def base_token(symbol: str) -> str:
    """Return the base asset of a ``BASE/QUOTE`` symbol (``BTC/USDT`` -> ``BTC``)."""

    return symbol.split("/")[0]
