from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from core.repositories.minute_snapshot_repository import MinuteSnapshotRepository
from core.repositories.price_sample_repository import PriceSampleRepository
from core.services.history_interval import parse_interval_ms

from .deps import get_minute_snapshot_repository, get_price_sample_repository, get_valid_symbols
from .dtos.price_history_dtos import MinuteSnapshotOutDTO, PricePointDTO, SymbolHistoryDTO

router = APIRouter(tags=["history"])

HISTORY_WINDOW = timedelta(hours=6)
RAW_HISTORY_LIMIT = 21_600


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": message})


@router.get("/prices/historical", response_model=List[SymbolHistoryDTO])
async def get_raw_history(
    symbol: str = Query("JLP", description="Tracked symbol, e.g. JLP"),
    repo: PriceSampleRepository = Depends(get_price_sample_repository),
) -> List[SymbolHistoryDTO]:
    """
    Unbucketed samples of one symbol over the last 6 hours, oldest first.
    """
    sym = symbol.strip().upper()
    since = datetime.now(tz=timezone.utc) - HISTORY_WINDOW
    samples = await repo.list_since(sym, since, RAW_HISTORY_LIMIT)
    return [
        SymbolHistoryDTO(
            symbol=sym,
            history=[PricePointDTO(timestamp=s.observed_at, price=s.price) for s in samples],
        )
    ]


@router.get("/api/getHistoricalPrices", response_model=Dict[str, List[PricePointDTO]])
async def get_bucketed_history(
    symbols: Optional[str] = Query(None, description="Comma-separated, e.g. JLP,SOL"),
    interval: str = Query("3m", description='Bucket size like "1m", "5m", "1h"'),
    repo: PriceSampleRepository = Depends(get_price_sample_repository),
    valid_symbols: List[str] = Depends(get_valid_symbols),
):
    """
    Last price per interval bucket over the last 6 hours, grouped by symbol.
    """
    if not symbols:
        return _bad_request("Missing required query parameter: symbols (comma-separated)")

    requested = [s.strip().upper() for s in symbols.split(",") if s.strip()]
    requested = [s for s in requested if s in valid_symbols]
    if not requested:
        return _bad_request(f"No valid symbols requested. Valid symbols are {', '.join(valid_symbols)}.")

    bucket_ms = parse_interval_ms(interval)
    if bucket_ms is None:
        return _bad_request('Invalid interval format. Use format like "1m", "5m", "1h".')

    end = datetime.now(tz=timezone.utc)
    buckets = await repo.list_buckets(requested, end - HISTORY_WINDOW, end, bucket_ms)

    out: Dict[str, List[PricePointDTO]] = {s: [] for s in requested}
    for b in buckets:
        if b.symbol in out:
            out[b.symbol].append(PricePointDTO(timestamp=b.bucket_start, price=b.price))
    return out


@router.get("/api/minutePrices", response_model=List[MinuteSnapshotOutDTO])
async def get_minute_snapshots(
    hours: int = Query(24, ge=1, le=24 * 365),
    repo: MinuteSnapshotRepository = Depends(get_minute_snapshot_repository),
) -> List[MinuteSnapshotOutDTO]:
    """
    Stored minute snapshots of the last `hours`, oldest first.
    """
    since = datetime.now(tz=timezone.utc) - timedelta(hours=int(hours))
    snaps = await repo.list_since(since)
    return [MinuteSnapshotOutDTO(values=s.values, captured_at=s.captured_at) for s in snaps]
