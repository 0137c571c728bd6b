from __future__ import annotations

from typing import Iterable, List

from core.domain.entities.price_sample_entity import PriceSampleEntity


class SampleBuffer:
    """
    Ordered, append-only buffer of samples waiting to be persisted.

    Touched only from the event loop thread, and none of the methods await,
    so `take_and_clear` cannot interleave with an append: every sample lands
    in exactly one take.
    """

    def __init__(self) -> None:
        self._items: List[PriceSampleEntity] = []

    def append(self, sample: PriceSampleEntity) -> None:
        self._items.append(sample)

    def extend(self, samples: Iterable[PriceSampleEntity]) -> None:
        self._items.extend(samples)

    def take_and_clear(self) -> List[PriceSampleEntity]:
        """Return everything buffered so far and start over with an empty buffer."""
        taken, self._items = self._items, []
        return taken

    def __len__(self) -> int:
        return len(self._items)
