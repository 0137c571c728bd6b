from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence

from core.domain.entities.price_sample_entity import PriceSampleEntity


@dataclass(frozen=True)
class BulkInsertOutcome:
    """Result of an unordered bulk insert; `rejected` describes dropped records."""

    inserted: int
    rejected: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PriceBucket:
    """Last observed price of a symbol inside one time bucket."""

    symbol: str
    bucket_start: datetime
    price: float


class PriceSampleRepository(ABC):
    """Repository interface for high-frequency price samples."""

    @abstractmethod
    async def ensure_indexes(self) -> None: ...

    @abstractmethod
    async def insert_many(self, samples: Sequence[PriceSampleEntity]) -> BulkInsertOutcome:
        """
        Insert samples without ordering guarantees.

        Partial rejections are reported in the outcome, not raised.
        Raises PersistenceUnavailable when the store cannot be reached.
        """

    @abstractmethod
    async def list_since(self, symbol: str, since: datetime, limit: int) -> List[PriceSampleEntity]: ...

    @abstractmethod
    async def list_buckets(
        self,
        symbols: Sequence[str],
        start: datetime,
        end: datetime,
        bucket_ms: int,
    ) -> List[PriceBucket]: ...
