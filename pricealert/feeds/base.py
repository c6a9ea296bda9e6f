"""Base price feed interface for pricealert."""

from abc import ABC, abstractmethod

from pricealert.models import PriceQuote


class BasePriceFeed(ABC):
    """Abstract base class for price feed implementations.

    A feed returns the latest price for a symbol together with the
    previous reference price (typically the previous close).
    """

    @abstractmethod
    async def get_price(self, symbol: str) -> PriceQuote:
        """Get the latest quote for a symbol.

        Args:
            symbol: Instrument identifier.

        Returns:
            PriceQuote with current and previous reference prices.

        Raises:
            FeedUnavailable: If no price can be obtained.
        """
        pass

    async def aclose(self) -> None:
        """Release any resources held by the feed."""
        return None
