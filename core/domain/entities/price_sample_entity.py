from __future__ import annotations

import math
from datetime import datetime

from pydantic import ConfigDict, field_validator

from core.domain.entities.base_entity import MongoEntity


class PriceSampleEntity(MongoEntity):
    """
    One validated price observation for a tracked symbol.

    All samples produced by the same poll cycle share `observed_at`.
    Immutable once created; ownership passes from the sample buffer to the
    store on a successful flush.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    source_key: str  # upstream token id
    observed_at: datetime

    @field_validator("price")
    @classmethod
    def _validate_price(cls, v: float) -> float:
        if not math.isfinite(v) or v < 0:
            raise ValueError(f"price must be finite and non-negative, got {v!r}")
        return v
