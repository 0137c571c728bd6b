from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from core.domain.entities.minute_snapshot_entity import MinuteSnapshotEntity


class MinuteSnapshotRepository(ABC):
    """Repository interface for once-per-minute consolidated snapshots."""

    @abstractmethod
    async def ensure_indexes(self) -> None: ...

    @abstractmethod
    async def insert(self, snapshot: MinuteSnapshotEntity) -> None:
        """
        Store a single snapshot.

        Raises PersistenceUnavailable when the store cannot be reached.
        """

    @abstractmethod
    async def list_since(self, since: datetime) -> List[MinuteSnapshotEntity]: ...
