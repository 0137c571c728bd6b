# core/exceptions.py
from __future__ import annotations

from typing import Any, Dict, Optional


class PriceFeedError(Exception):
    """
    Base exception for the price feed.

    Carries an optional `context` dict so callers can log structured details
    without parsing the message.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class UpstreamError(PriceFeedError):
    """Failure talking to the external price source."""


class UpstreamUnavailable(UpstreamError):
    """
    Transient upstream failure (timeout, connection reset, transport error).

    Policy: retried by the poller with exponential backoff.
    """


class UpstreamRateLimited(UpstreamUnavailable):
    """
    Upstream answered HTTP 429.

    Policy: same as UpstreamUnavailable (backoff and retry).
    """


class UpstreamRejected(UpstreamError):
    """
    Upstream answered a non-success status other than 429.

    Policy: abandon the cycle, no retry.
    """

    def __init__(self, message: str, *, status_code: int, body: str = "", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.status_code = int(status_code)
        self.body = body


class UpstreamMalformed(UpstreamError):
    """
    Upstream body could not be parsed into the expected shape.

    Policy: abandon the cycle, no retry.
    """


class PersistenceUnavailable(PriceFeedError):
    """
    The store could not be reached for a write.

    Policy: drop the batch / snapshot, log, no retry.
    """
