# core/usecases/poll_prices_use_case.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from core.domain.entities.price_quote_entity import PriceQuote, QuoteStatus
from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.exceptions import UpstreamMalformed, UpstreamRateLimited, UpstreamRejected, UpstreamUnavailable
from core.services.latest_value_cache import LatestValueCache
from core.services.sample_buffer import SampleBuffer

FetchFn = Callable[[Mapping[str, str]], Awaitable[Dict[str, PriceQuote]]]
SamplesFn = Callable[[List[PriceSampleEntity]], Awaitable[object]]


class PollPricesUseCase:
    """
    Runs one poll cycle against the upstream price source.

    Per cycle:
      - attempt n fails with UpstreamUnavailable (incl. 429) -> wait backoff(n) = unit * 2^n, retry
        (at most `max_attempts` attempts; an exhausted cycle just yields nothing)
      - UpstreamRejected / UpstreamMalformed -> abandon the cycle, no retry
      - success -> one PriceSampleEntity per OK quote, all with the same observed_at

    When `run_cycle` gets a `stop` event, setting it ends a backoff wait at
    once and abandons the cycle. A request already in flight still completes.

    Side effects of a non-empty cycle, in order:
      1. append to the sample buffer (optionally filtered by `persist_symbols`)
      2. update the latest value cache
      3. hand the samples to `on_samples` (the broadcast hub)
    """

    def __init__(
        self,
        *,
        tracked: Mapping[str, str],
        fetch_fn: FetchFn,
        buffer: SampleBuffer,
        cache: LatestValueCache,
        on_samples: Optional[SamplesFn] = None,
        persist_symbols: Optional[Iterable[str]] = None,
        max_attempts: int = 5,
        backoff_unit_s: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now_fn: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._tracked = dict(tracked)
        self._fetch_fn = fetch_fn
        self._buffer = buffer
        self._cache = cache
        self._on_samples = on_samples
        self._persist_symbols = {s.upper() for s in persist_symbols} if persist_symbols else None
        self._max_attempts = max(1, int(max_attempts))
        self._backoff_unit_s = float(backoff_unit_s)
        self._sleep = sleep
        self._now_fn = now_fn or (lambda: datetime.now(tz=timezone.utc))
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def backoff(self, attempt: int) -> float:
        return self._backoff_unit_s * (2 ** attempt)

    async def run_cycle(self, stop: asyncio.Event | None = None) -> List[PriceSampleEntity]:
        """
        Execute one cycle. Never raises for upstream failures.

        Returns the samples produced (empty if the cycle failed, was stopped
        during backoff, or nothing was valid).
        """
        quotes = await self._fetch_with_retry(stop)
        if quotes is None:
            return []

        samples = self._build_samples(quotes)
        if not samples:
            return []

        self._buffer.extend(s for s in samples if self._should_persist(s.symbol))
        for s in samples:
            self._cache.update(s.symbol, s.price)

        if self._on_samples is not None:
            await self._on_samples(samples)

        return samples

    async def _fetch_with_retry(self, stop: asyncio.Event | None) -> Optional[Dict[str, PriceQuote]]:
        for attempt in range(1, self._max_attempts + 1):
            if stop is not None and stop.is_set():
                return None
            try:
                return await self._fetch_fn(self._tracked)
            except UpstreamUnavailable as exc:
                delay = self.backoff(attempt)
                reason = "Rate limit exceeded (429)" if isinstance(exc, UpstreamRateLimited) else "Network error/timeout"
                self._logger.warning(
                    "%s. Retrying in %.1fs (attempt %s/%s): %s",
                    reason,
                    delay,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                if await self._backoff_wait(delay, stop):
                    self._logger.info("Stop requested during backoff. Abandoning this fetch cycle.")
                    return None
            except UpstreamRejected as exc:
                self._logger.error("Price API request failed status=%s body=%s", exc.status_code, exc.body)
                return None
            except UpstreamMalformed as exc:
                self._logger.error("Price API returned a malformed body: %s context=%s", exc, exc.context)
                return None

        self._logger.error("Fetch failed after %s attempts. Skipping this fetch cycle.", self._max_attempts)
        return None

    async def _backoff_wait(self, delay: float, stop: asyncio.Event | None) -> bool:
        """Sleep `delay`, or less if `stop` gets set. Returns True if stopped."""
        if stop is None:
            await self._sleep(delay)
            return False
        if stop.is_set():
            return True

        sleeper = asyncio.ensure_future(self._sleep(delay))
        stopper = asyncio.ensure_future(stop.wait())
        try:
            await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            stopper.cancel()
        return stop.is_set()

    def _build_samples(self, quotes: Mapping[str, PriceQuote]) -> List[PriceSampleEntity]:
        observed_at = self._now_fn()
        samples: List[PriceSampleEntity] = []

        for symbol, source_key in self._tracked.items():
            quote = quotes.get(symbol)
            if quote is None or quote.status is QuoteStatus.ABSENT:
                self._logger.warning("Price data for %s (%s) not found in API response.", symbol, source_key)
                continue
            if not quote.ok:
                self._logger.warning("Invalid price for %s (%s): %r", symbol, source_key, quote.raw)
                continue

            samples.append(
                PriceSampleEntity(
                    symbol=symbol,
                    price=quote.price,
                    source_key=source_key,
                    observed_at=observed_at,
                )
            )
        return samples

    def _should_persist(self, symbol: str) -> bool:
        return self._persist_symbols is None or symbol.upper() in self._persist_symbols
