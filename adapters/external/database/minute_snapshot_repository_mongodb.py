from __future__ import annotations

from datetime import datetime
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure

from core.domain.entities.minute_snapshot_entity import MinuteSnapshotEntity
from core.exceptions import PersistenceUnavailable
from core.repositories.minute_snapshot_repository import MinuteSnapshotRepository


class MinuteSnapshotRepositoryMongoDB(MinuteSnapshotRepository):
    """
    MongoDB repository for minute snapshots.

    Kept for one year (TTL on captured_at).
    """

    COLLECTION = "minuteprices"
    TTL_SECONDS = 365 * 24 * 60 * 60
    MAX_LIST = 10_000

    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def ensure_indexes(self) -> None:
        col = self._db[self.COLLECTION]
        await col.create_index([("captured_at", 1)], expireAfterSeconds=self.TTL_SECONDS)

    async def insert(self, snapshot: MinuteSnapshotEntity) -> None:
        col = self._db[self.COLLECTION]
        try:
            await col.insert_one(snapshot.to_mongo())
        except ConnectionFailure as exc:
            raise PersistenceUnavailable(
                "MongoDB unreachable while inserting minute snapshot",
                context={"collection": self.COLLECTION, "error": str(exc)},
            ) from exc

    async def list_since(self, since: datetime) -> List[MinuteSnapshotEntity]:
        col = self._db[self.COLLECTION]
        cur = col.find({"captured_at": {"$gte": since}}).sort("captured_at", 1)
        docs = await cur.to_list(length=self.MAX_LIST)
        return [MinuteSnapshotEntity.from_mongo(d) for d in docs if d]
