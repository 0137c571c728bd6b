from __future__ import annotations

import contextlib
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from adapters.external.database.minute_snapshot_repository_mongodb import MinuteSnapshotRepositoryMongoDB
from adapters.external.database.mongodb_client import get_mongo_client
from adapters.external.database.price_sample_repository_mongodb import PriceSampleRepositoryMongoDB
from adapters.external.jupiter.jupiter_price_client import JupiterPriceClient
from config.settings import Settings, settings as default_settings
from core.services.broadcast_hub import BroadcastHub
from core.services.latest_value_cache import LatestValueCache
from core.services.sample_buffer import SampleBuffer
from core.services.subscriber_registry import SubscriberRegistry
from core.usecases.flush_samples_use_case import FlushSamplesUseCase
from core.usecases.poll_prices_use_case import PollPricesUseCase
from core.usecases.record_snapshot_use_case import RecordSnapshotUseCase
from workers.pipeline_lifecycle import PipelineLifecycle


class PriceFeedSupervisor:
    """
    High-level supervisor for api-price-feed.

    Responsibilities:
    - Connect to MongoDB and ensure indexes (the only fatal failure: no DB at startup).
    - Wire the upstream client, buffer, cache, broadcast hub and use cases into
      one PipelineLifecycle. All pipeline state lives in these objects.
    - On shutdown, stop the pipeline with a final flush and close clients.

    Background work itself starts only when the first subscriber connects.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self._settings = config or default_settings
        self._logger = logging.getLogger(self.__class__.__name__)
        self._mongo_client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None
        self._price_client: JupiterPriceClient | None = None
        self._lifecycle: PipelineLifecycle | None = None

    @property
    def db(self) -> AsyncIOMotorDatabase | None:
        """
        Expose the database handle after start().
        """
        return self._db

    @property
    def lifecycle(self) -> PipelineLifecycle | None:
        return self._lifecycle

    async def start(self) -> None:
        """
        Initialize DB, ensure indexes and build the pipeline (idle until a subscriber connects).
        """
        cfg = self._settings

        self._mongo_client = get_mongo_client(cfg.MONGODB_URI)
        self._db = self._mongo_client[cfg.MONGODB_DB_NAME]

        sample_repo = PriceSampleRepositoryMongoDB(self._db)
        snapshot_repo = MinuteSnapshotRepositoryMongoDB(self._db)

        # fails fast (ServerSelectionTimeoutError) if Mongo is unreachable at startup
        await sample_repo.ensure_indexes()
        await snapshot_repo.ensure_indexes()

        self._price_client = JupiterPriceClient(
            base_url=cfg.JUPITER_PRICE_API_URL,
            timeout_s=cfg.JUPITER_TIMEOUT_S,
        )

        registry = SubscriberRegistry()
        buffer = SampleBuffer()
        cache = LatestValueCache()
        hub = BroadcastHub(registry=registry)

        poll_uc = PollPricesUseCase(
            tracked=cfg.TOKEN_IDS,
            fetch_fn=self._price_client.fetch_prices,
            buffer=buffer,
            cache=cache,
            on_samples=hub.broadcast,
            persist_symbols=cfg.PERSIST_SYMBOLS or None,
            max_attempts=cfg.MAX_FETCH_ATTEMPTS,
            backoff_unit_s=cfg.BACKOFF_UNIT_S,
        )
        flush_uc = FlushSamplesUseCase(buffer=buffer, sample_repository=sample_repo)
        snapshot_uc = RecordSnapshotUseCase(
            cache=cache,
            snapshot_repository=snapshot_repo,
            required_symbols=cfg.SNAPSHOT_SYMBOLS,
        )

        self._lifecycle = PipelineLifecycle(
            registry=registry,
            poll_uc=poll_uc,
            flush_uc=flush_uc,
            snapshot_uc=snapshot_uc,
            poll_every_s=cfg.POLL_EVERY_S,
            flush_every_s=cfg.FLUSH_EVERY_S,
            snapshot_every_s=cfg.SNAPSHOT_EVERY_S,
        )

        self._logger.info(
            "Price feed ready. tracked=%s poll_every_s=%s flush_every_s=%s snapshot_every_s=%s",
            cfg.TOKEN_IDS,
            cfg.POLL_EVERY_S,
            cfg.FLUSH_EVERY_S,
            cfg.SNAPSHOT_EVERY_S,
        )

    async def stop(self) -> None:
        """
        Stop the pipeline (final flush), close the upstream client and MongoDB.
        """
        if self._lifecycle is not None:
            try:
                await self._lifecycle.shutdown()
            except Exception as exc:
                self._logger.exception("Pipeline shutdown failed: %s", exc)

        if self._price_client is not None:
            with contextlib.suppress(Exception):
                await self._price_client.aclose()
            self._price_client = None

        if self._mongo_client:
            self._mongo_client.close()
            self._mongo_client = None
