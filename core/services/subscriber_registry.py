from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Iterator, List, Set

CloseHandler = Callable[["SubscriberChannel"], Awaitable[None]]


class SubscriberChannel(ABC):
    """
    One connected observer, as seen by the broadcast pipeline.

    Transport adapters implement `send` and `is_open`, and call
    `notify_closed()` exactly when the underlying connection goes away.
    """

    def __init__(self) -> None:
        self._close_handlers: List[CloseHandler] = []
        self._closed_notified = False

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send an already-serialized message."""

    @abstractmethod
    def is_open(self) -> bool:
        """True while the channel can accept messages."""

    def on_close(self, handler: CloseHandler) -> None:
        self._close_handlers.append(handler)

    async def notify_closed(self) -> None:
        """Run close handlers once, however many times the transport reports closure."""
        if self._closed_notified:
            return
        self._closed_notified = True
        for handler in list(self._close_handlers):
            await handler(self)


class SubscriberRegistry:
    """
    Set of currently connected subscribers (membership only, no ordering).
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._subscribers: Set[SubscriberChannel] = set()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def add(self, channel: SubscriberChannel) -> int:
        self._subscribers.add(channel)
        self._logger.info("Subscriber added. total=%s", len(self._subscribers))
        return len(self._subscribers)

    def remove(self, channel: SubscriberChannel) -> int:
        if channel in self._subscribers:
            self._subscribers.discard(channel)
            self._logger.info("Subscriber removed. total=%s", len(self._subscribers))
        return len(self._subscribers)

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, channel: SubscriberChannel) -> bool:
        return channel in self._subscribers

    def __iter__(self) -> Iterator[SubscriberChannel]:
        # copy: sends may await, and the set can change meanwhile
        return iter(list(self._subscribers))
