from __future__ import annotations

from typing import Dict, Mapping, Optional

import httpx

from core.domain.entities.price_quote_entity import PriceQuote
from core.exceptions import UpstreamMalformed, UpstreamRateLimited, UpstreamRejected, UpstreamUnavailable
from core.services.price_quote_parser import PriceQuoteParser


class JupiterPriceClient:
    """
    Minimal client for the Jupiter price API (v2).

    One GET per call:
      {base_url}?ids=<token id>,<token id>,...

    No retries here; the poller owns retry policy. Failures are mapped to:
      - UpstreamUnavailable: timeouts and transport errors
      - UpstreamRateLimited: HTTP 429
      - UpstreamRejected: any other non-2xx status
      - UpstreamMalformed: body is not JSON or has an unexpected shape
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = str(base_url).strip()
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_s, connect=timeout_s), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_prices(self, tracked: Mapping[str, str]) -> Dict[str, PriceQuote]:
        """
        Fetch prices for all tracked symbols (symbol -> token id) in one request.

        Returns one PriceQuote per tracked symbol.
        """
        ids = ",".join(tracked.values())
        try:
            r = await self._client.get(self._base_url, params={"ids": ids})
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailable("Price request timed out", context={"ids": ids, "error": str(exc)}) from exc
        except httpx.TransportError as exc:
            raise UpstreamUnavailable("Price request failed", context={"ids": ids, "error": str(exc)}) from exc

        if r.status_code == 429:
            raise UpstreamRateLimited(
                "Price API rate limit exceeded",
                context={"retry_after": r.headers.get("retry-after")},
            )
        if not r.is_success:
            raise UpstreamRejected(
                f"Price API request failed with status {r.status_code}",
                status_code=r.status_code,
                body=r.text[:500],
            )

        try:
            body = r.json()
        except ValueError as exc:
            raise UpstreamMalformed("Price response is not valid JSON", context={"body": r.text[:200]}) from exc

        return PriceQuoteParser.parse(body, tracked)
