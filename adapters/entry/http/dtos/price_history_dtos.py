from __future__ import annotations

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel


class PricePointDTO(BaseModel):
    """
    One point of a price series.
    """

    timestamp: datetime
    price: float


class SymbolHistoryDTO(BaseModel):
    """
    Raw (unbucketed) price history of one symbol.
    """

    symbol: str
    history: List[PricePointDTO]


class MinuteSnapshotOutDTO(BaseModel):
    """
    DTO returned by API for a stored minute snapshot.
    """

    values: Dict[str, float]
    captured_at: datetime
