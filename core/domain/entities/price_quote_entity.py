from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class QuoteStatus(str, Enum):
    OK = "ok"
    ABSENT = "absent"  # source key missing from the response
    INVALID = "invalid"  # present, but the price is not a usable number


class PriceQuote(BaseModel):
    """
    Typed per-symbol result of validating one upstream response.

    `price` is set only when status is OK.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    symbol: str
    source_key: str
    status: QuoteStatus
    price: Optional[float] = None
    raw: Any = None

    @property
    def ok(self) -> bool:
        return self.status is QuoteStatus.OK and self.price is not None
