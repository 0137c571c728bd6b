from __future__ import annotations

import json
import logging
from typing import Sequence

from core.domain.entities.price_sample_entity import PriceSampleEntity
from core.services.subscriber_registry import SubscriberRegistry

PRICE_UPDATE = "PRICE_UPDATE"


class BroadcastHub:
    """
    Fans out each poll cycle's samples to every open subscriber.

    - The message is serialized once per broadcast.
    - Channels that are not open are skipped, never queued.
    - A failing send is logged and does not stop delivery to the others;
      removal of that subscriber is left to its own disconnect handling.
    """

    def __init__(self, *, registry: SubscriberRegistry, logger: logging.Logger | None = None):
        self._registry = registry
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def build_message(samples: Sequence[PriceSampleEntity]) -> str:
        return json.dumps({"type": PRICE_UPDATE, "payload": [s.to_dict() for s in samples]})

    async def broadcast(self, samples: Sequence[PriceSampleEntity]) -> int:
        """
        Returns the number of subscribers the message was delivered to.
        """
        if not samples:
            return 0

        message = self.build_message(samples)
        delivered = 0
        for channel in self._registry:
            if not channel.is_open():
                continue
            try:
                await channel.send(message)
                delivered += 1
            except Exception as exc:
                self._logger.warning("Broadcast to subscriber failed: %s", exc)

        self._logger.debug("Broadcast %s samples to %s subscribers", len(samples), delivered)
        return delivered
