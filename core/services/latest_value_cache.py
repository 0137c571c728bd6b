from __future__ import annotations

from typing import Dict, Iterable, Optional


class LatestValueCache:
    """Most recent price per symbol. No history."""

    def __init__(self) -> None:
        self._prices: Dict[str, float] = {}

    def update(self, symbol: str, price: float) -> None:
        self._prices[symbol] = float(price)

    def get(self, symbol: str) -> Optional[float]:
        return self._prices.get(symbol)

    def get_many(self, symbols: Iterable[str]) -> Dict[str, Optional[float]]:
        return {s: self._prices.get(s) for s in symbols}

    def __len__(self) -> int:
        return len(self._prices)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._prices
