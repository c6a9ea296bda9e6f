"""HTTP JSON price feed."""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from pricealert.errors import FeedUnavailable
from pricealert.feeds.base import BasePriceFeed
from pricealert.models import PriceQuote

logger = logging.getLogger(__name__)


class HttpPriceFeed(BasePriceFeed):
    """Fetch quotes from a JSON endpoint at ``GET {base_url}/{symbol}``.

    The symbol is percent-encoded as a single path segment, so symbols
    such as ``BRK/B`` or ``^N225`` reach the right resource.

    The response body must be a JSON object holding the latest price and
    the previous reference price under configurable keys.
    """

    def __init__(
        self,
        base_url: str,
        price_field: str = "price",
        previous_field: str = "previousClose",
        timeout: float = 10.0,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the feed.

        Args:
            base_url: Endpoint prefix; the symbol is appended as a path segment.
            price_field: JSON key of the latest price.
            previous_field: JSON key of the previous reference price.
            timeout: HTTP timeout in seconds.
            headers: Extra request headers (e.g. API keys).
            transport: Custom httpx transport (used in tests).
        """
        if not base_url:
            raise ValueError("HttpPriceFeed requires a base_url")
        self.price_field = price_field
        self.previous_field = previous_field
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def get_price(self, symbol: str) -> PriceQuote:
        """Fetch the latest quote for a symbol.

        Raises:
            FeedUnavailable: On transport errors, non-2xx responses or
                malformed bodies.
        """
        try:
            response = await self._client.get(f"/{quote(symbol, safe='')}")
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise FeedUnavailable(symbol, "request timed out") from e
        except httpx.HTTPStatusError as e:
            raise FeedUnavailable(symbol, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise FeedUnavailable(symbol, str(e) or type(e).__name__) from e

        logger.debug("Quote response for %s: %s", symbol, data)
        if not isinstance(data, dict):
            raise FeedUnavailable(symbol, "response is not a JSON object")

        price = data.get(self.price_field)
        previous = data.get(self.previous_field, price)
        if price is None:
            raise FeedUnavailable(symbol, f"missing '{self.price_field}' in response")

        try:
            return PriceQuote(
                symbol=symbol,
                price=float(price),
                previous_price=float(previous),
            )
        except (TypeError, ValueError) as e:
            raise FeedUnavailable(symbol, f"invalid price data: {e}") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
