from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional

from core.domain.entities.price_quote_entity import PriceQuote, QuoteStatus
from core.exceptions import UpstreamMalformed


class PriceQuoteParser:
    """
    Maps a raw Jupiter price response into one typed PriceQuote per tracked symbol.

    Expected body:
      {"data": {"<token id>": {"price": "<number>"}, ...}}

    Rules:
    - A body without a `data` mapping is malformed (the whole cycle fails).
    - A token id missing from `data` (or mapped to null) is ABSENT.
    - A present token whose price is not a finite, non-negative number is INVALID.
    """

    @staticmethod
    def parse(body: Any, tracked: Mapping[str, str]) -> Dict[str, PriceQuote]:
        if not isinstance(body, dict):
            raise UpstreamMalformed(
                "Price response is not a JSON object",
                context={"type": type(body).__name__},
            )
        data = body.get("data")
        if not isinstance(data, dict):
            raise UpstreamMalformed(
                "Price response has no 'data' mapping",
                context={"keys": sorted(str(k) for k in body.keys())},
            )

        out: Dict[str, PriceQuote] = {}
        for symbol, source_key in tracked.items():
            entry = data.get(source_key)
            if entry is None:
                out[symbol] = PriceQuote(symbol=symbol, source_key=source_key, status=QuoteStatus.ABSENT)
                continue

            raw = entry.get("price") if isinstance(entry, dict) else entry
            price = PriceQuoteParser.coerce_price(raw)
            if price is None:
                out[symbol] = PriceQuote(symbol=symbol, source_key=source_key, status=QuoteStatus.INVALID, raw=raw)
            else:
                out[symbol] = PriceQuote(symbol=symbol, source_key=source_key, status=QuoteStatus.OK, price=price, raw=raw)
        return out

    @staticmethod
    def coerce_price(raw: Any) -> Optional[float]:
        """
        Jupiter sends prices as strings; numbers are accepted too.
        Returns None for anything that is not a finite, non-negative number.
        """
        if raw is None or isinstance(raw, bool):
            return None
        try:
            price = float(raw)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(price) or price < 0:
            return None
        return price
