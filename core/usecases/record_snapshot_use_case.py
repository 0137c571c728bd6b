from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from core.domain.entities.minute_snapshot_entity import MinuteSnapshotEntity
from core.exceptions import PersistenceUnavailable
from core.repositories.minute_snapshot_repository import MinuteSnapshotRepository
from core.services.latest_value_cache import LatestValueCache


class RecordSnapshotUseCase:
    """
    Writes one consolidated snapshot of the latest cached prices.

    A snapshot is all-or-nothing: if any required symbol has no cached
    price yet, the tick is skipped.
    """

    def __init__(
        self,
        *,
        cache: LatestValueCache,
        snapshot_repository: MinuteSnapshotRepository,
        required_symbols: Sequence[str],
        now_fn: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._cache = cache
        self._snapshots = snapshot_repository
        self._required = [s.upper() for s in required_symbols]
        self._now_fn = now_fn or (lambda: datetime.now(tz=timezone.utc))
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def flush_now(self) -> Optional[MinuteSnapshotEntity]:
        values = self._cache.get_many(self._required)
        missing = [s for s, v in values.items() if v is None]
        if missing:
            self._logger.warning("Missing %s price(s) for minute snapshot. Skipping.", ",".join(missing))
            return None

        snapshot = MinuteSnapshotEntity(values=values, captured_at=self._now_fn())
        try:
            await self._snapshots.insert(snapshot)
        except PersistenceUnavailable as exc:
            self._logger.warning("DB not reachable. Skipping minute snapshot: %s", exc)
            return None
        except Exception as exc:
            self._logger.exception("Error saving minute snapshot to DB: %s", exc)
            return None

        self._logger.info("Saved minute snapshot %s", snapshot.values)
        return snapshot
