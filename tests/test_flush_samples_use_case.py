"""Tests for FlushSamplesUseCase."""

from unittest.mock import AsyncMock

import pytest

from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.exceptions import PersistenceUnavailable
from core.services.price_quote_parser import PriceQuoteParser
from core.usecases.flush_samples_use_case import FlushSamplesUseCase
from core.usecases.poll_prices_use_case import PollPricesUseCase
from fakes import FIXED_NOW, JLP_ID, SOL_ID


def _sample(price: float) -> PriceSampleEntity:
    return PriceSampleEntity(symbol="JLP", price=price, source_key=JLP_ID, observed_at=FIXED_NOW)


@pytest.mark.asyncio
class TestFlushSamplesUseCase:
    """Unit tests for the persistence flusher."""

    async def test_empty_buffer_is_noop(self, buffer, sample_repo):
        uc = FlushSamplesUseCase(buffer=buffer, sample_repository=sample_repo)
        assert await uc.flush_now() == 0
        assert sample_repo.calls == []

    async def test_flush_writes_and_clears(self, buffer, sample_repo):
        buffer.extend([_sample(1.0), _sample(2.0)])
        uc = FlushSamplesUseCase(buffer=buffer, sample_repository=sample_repo)

        assert await uc.flush_now() == 2
        assert [s.price for s in sample_repo.stored] == [1.0, 2.0]
        assert len(buffer) == 0

    async def test_partial_rejection_counts_as_success(self, buffer, sample_repo):
        """Rejected items are logged, not retried or re-buffered."""
        sample_repo.reject_count = 1
        buffer.extend([_sample(1.0), _sample(2.0), _sample(3.0)])
        uc = FlushSamplesUseCase(buffer=buffer, sample_repository=sample_repo)

        assert await uc.flush_now() == 2
        assert len(buffer) == 0
        assert await uc.flush_now() == 0
        assert len(sample_repo.calls) == 1

    @pytest.mark.parametrize("error", [PersistenceUnavailable("down"), RuntimeError("write failed")])
    async def test_failed_write_drops_batch(self, buffer, sample_repo, error):
        """A write that raises discards the batch; it is never retried."""
        sample_repo.error = error
        buffer.extend([_sample(1.0), _sample(2.0)])
        uc = FlushSamplesUseCase(buffer=buffer, sample_repository=sample_repo)

        assert await uc.flush_now() == 0
        assert len(buffer) == 0

        sample_repo.error = None
        buffer.append(_sample(3.0))
        assert await uc.flush_now() == 1
        assert [s.price for s in sample_repo.stored] == [3.0]
        assert [len(c) for c in sample_repo.calls] == [2, 1]

    async def test_appends_during_write_go_to_next_flush(self, buffer, sample_repo):
        """The buffer is taken before the write is awaited."""
        original_insert = sample_repo.insert_many

        async def insert_and_append(samples):
            buffer.append(_sample(9.0))
            return await original_insert(samples)

        sample_repo.insert_many = insert_and_append
        buffer.append(_sample(1.0))
        uc = FlushSamplesUseCase(buffer=buffer, sample_repository=sample_repo)

        assert await uc.flush_now() == 1
        assert len(buffer) == 1
        assert await uc.flush_now() == 1
        assert [s.price for s in sample_repo.stored] == [1.0, 9.0]

    async def test_no_loss_no_duplication_across_cycles(self, tracked, buffer, cache, sample_repo, sleep):
        """Records written equal valid samples produced, across interleaved polls and flushes."""
        bodies = [
            {"data": {JLP_ID: {"price": "1.0"}, SOL_ID: {"price": "100"}}},
            {"data": {JLP_ID: {"price": "1.1"}}},
            {"data": {JLP_ID: {"price": "1.2"}, SOL_ID: {"price": "bad"}}},
            {"data": {JLP_ID: {"price": "1.3"}, SOL_ID: {"price": "101"}}},
        ]

        async def fetch(tracked_map):
            return PriceQuoteParser.parse(bodies.pop(0), tracked_map)

        poll = PollPricesUseCase(
            tracked=tracked, fetch_fn=fetch, buffer=buffer, cache=cache, on_samples=AsyncMock(), sleep=sleep
        )
        flush = FlushSamplesUseCase(buffer=buffer, sample_repository=sample_repo)

        produced = 0
        produced += len(await poll.run_cycle())
        produced += len(await poll.run_cycle())
        await flush.flush_now()
        produced += len(await poll.run_cycle())
        await flush.flush_now()
        await flush.flush_now()
        produced += len(await poll.run_cycle())
        await flush.flush_now()

        assert produced == 6
        assert len(sample_repo.stored) == produced
        assert len({id(s) for s in sample_repo.stored}) == produced
