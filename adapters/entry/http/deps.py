from __future__ import annotations

from typing import List

from fastapi import Depends, HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from starlette.requests import HTTPConnection

from adapters.external.database.minute_snapshot_repository_mongodb import MinuteSnapshotRepositoryMongoDB
from adapters.external.database.price_sample_repository_mongodb import PriceSampleRepositoryMongoDB
from config.settings import settings
from core.repositories.minute_snapshot_repository import MinuteSnapshotRepository
from core.repositories.price_sample_repository import PriceSampleRepository
from workers.pipeline_lifecycle import PipelineLifecycle


def get_db(request: Request) -> AsyncIOMotorDatabase:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=503, detail="database not initialized")
    return db


def get_price_sample_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> PriceSampleRepository:
    return PriceSampleRepositoryMongoDB(db)


def get_minute_snapshot_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> MinuteSnapshotRepository:
    return MinuteSnapshotRepositoryMongoDB(db)


def get_lifecycle(conn: HTTPConnection) -> PipelineLifecycle | None:
    """Works for both HTTP requests and WebSocket connections."""
    return getattr(conn.app.state, "lifecycle", None)


def get_allowed_origins(conn: HTTPConnection) -> List[str]:
    return getattr(conn.app.state, "allowed_origins", None) or settings.ALLOWED_ORIGINS


def get_valid_symbols() -> List[str]:
    return list(settings.TOKEN_IDS.keys())
