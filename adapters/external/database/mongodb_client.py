from __future__ import annotations

from motor.motor_asyncio import AsyncIOMotorClient

from config.settings import settings


def get_mongo_client(uri: str | None = None) -> AsyncIOMotorClient:
    """
    Build the Motor client used by the whole process.

    Server selection is capped at 5s so an unreachable store surfaces as a
    fast failure instead of a 30s hang on every write.
    """
    return AsyncIOMotorClient(uri or settings.MONGODB_URI, serverSelectionTimeoutMS=5000, tz_aware=True)
