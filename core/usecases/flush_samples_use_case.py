from __future__ import annotations

import logging

from core.exceptions import PersistenceUnavailable
from core.repositories.price_sample_repository import PriceSampleRepository
from core.services.sample_buffer import SampleBuffer


class FlushSamplesUseCase:
    """
    Drains the sample buffer into the price sample repository.

    Behavior:
      - Empty buffer -> no-op.
      - The buffer is cleared before the write is awaited, so samples
        appended during the write go to the next flush.
      - Partial rejections still count as success; rejected items are logged.
      - Store unreachable or write error -> the batch is dropped (at-most-once).
    """

    def __init__(
        self,
        *,
        buffer: SampleBuffer,
        sample_repository: PriceSampleRepository,
        logger: logging.Logger | None = None,
    ):
        self._buffer = buffer
        self._samples = sample_repository
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def flush_now(self) -> int:
        """
        Returns the number of samples written (0 when empty or dropped).
        """
        batch = self._buffer.take_and_clear()
        if not batch:
            return 0

        self._logger.info("Attempting to save batch of %s prices to DB...", len(batch))
        try:
            outcome = await self._samples.insert_many(batch)
        except PersistenceUnavailable as exc:
            self._logger.warning("DB not reachable. Dropping batch of %s prices: %s", len(batch), exc)
            return 0
        except Exception as exc:
            self._logger.exception("Error saving price batch to DB. Dropping %s prices: %s", len(batch), exc)
            return 0

        if outcome.rejected:
            self._logger.warning(
                "DB rejected %s of %s prices: %s",
                len(outcome.rejected),
                len(batch),
                outcome.rejected,
            )
        self._logger.info("Successfully saved %s prices.", outcome.inserted)
        return outcome.inserted
