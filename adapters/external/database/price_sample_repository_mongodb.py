from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import BulkWriteError, ConnectionFailure

from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.exceptions import PersistenceUnavailable
from core.repositories.price_sample_repository import BulkInsertOutcome, PriceBucket, PriceSampleRepository


class PriceSampleRepositoryMongoDB(PriceSampleRepository):
    """
    MongoDB repository for high-frequency price samples.

    Samples expire 6 hours after `observed_at` (TTL index); the history
    endpoints never look further back than that.
    """

    COLLECTION = "prices"
    TTL_SECONDS = 6 * 60 * 60

    def __init__(self, db: AsyncIOMotorDatabase, logger: logging.Logger | None = None):
        self._db = db
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def ensure_indexes(self) -> None:
        col = self._db[self.COLLECTION]
        await col.create_index([("observed_at", 1)], expireAfterSeconds=self.TTL_SECONDS)
        await col.create_index([("symbol", 1), ("observed_at", -1)])

    async def insert_many(self, samples: Sequence[PriceSampleEntity]) -> BulkInsertOutcome:
        if not samples:
            return BulkInsertOutcome(inserted=0)

        col = self._db[self.COLLECTION]
        docs = [s.to_mongo() for s in samples]
        try:
            result = await col.insert_many(docs, ordered=False)
        except BulkWriteError as exc:
            details = exc.details or {}
            rejected = [
                f"index={err.get('index')} code={err.get('code')} {err.get('errmsg', '')}".strip()
                for err in details.get("writeErrors", [])
            ]
            return BulkInsertOutcome(inserted=int(details.get("nInserted", 0)), rejected=rejected)
        except ConnectionFailure as exc:
            raise PersistenceUnavailable(
                "MongoDB unreachable while inserting price samples",
                context={"collection": self.COLLECTION, "count": len(docs), "error": str(exc)},
            ) from exc

        return BulkInsertOutcome(inserted=len(result.inserted_ids))

    async def list_since(self, symbol: str, since: datetime, limit: int) -> List[PriceSampleEntity]:
        col = self._db[self.COLLECTION]
        cur = (
            col.find({"symbol": symbol, "observed_at": {"$gte": since}})
            .sort("observed_at", 1)
            .limit(int(limit))
        )
        docs = await cur.to_list(length=int(limit))
        return [PriceSampleEntity.from_mongo(d) for d in docs if d]

    async def list_buckets(
        self,
        symbols: Sequence[str],
        start: datetime,
        end: datetime,
        bucket_ms: int,
    ) -> List[PriceBucket]:
        """
        Last price per (symbol, bucket), buckets aligned to the epoch.
        """
        col = self._db[self.COLLECTION]
        bucket_expr = {
            "$subtract": [
                {"$toLong": "$observed_at"},
                {"$mod": [{"$toLong": "$observed_at"}, int(bucket_ms)]},
            ]
        }
        pipeline = [
            {"$match": {"symbol": {"$in": list(symbols)}, "observed_at": {"$gte": start, "$lte": end}}},
            {"$sort": {"observed_at": 1}},
            {"$group": {"_id": {"symbol": "$symbol", "bucket": bucket_expr}, "price": {"$last": "$price"}}},
            {
                "$project": {
                    "_id": 0,
                    "symbol": "$_id.symbol",
                    "bucket_start": {"$toDate": "$_id.bucket"},
                    "price": 1,
                }
            },
            {"$sort": {"bucket_start": 1}},
        ]
        docs = await col.aggregate(pipeline).to_list(length=None)
        return [
            PriceBucket(symbol=d["symbol"], bucket_start=d["bucket_start"], price=float(d["price"]))
            for d in docs
        ]
