"""In-process price feed driven by configured or scripted prices."""

from typing import Union

from pricealert.errors import FeedUnavailable
from pricealert.feeds.base import BasePriceFeed
from pricealert.models import PriceQuote

PriceScript = Union[float, list[float]]


class StaticPriceFeed(BasePriceFeed):
    """Price feed that replays fixed prices.

    Each symbol maps to a single price or to a list of prices; a list is
    consumed one entry per call and its last entry then repeats. The
    previous reference price is the price returned by the prior call, or
    the current price on the first call.
    """

    def __init__(self, prices: dict[str, PriceScript] | None = None):
        """Initialize the feed.

        Args:
            prices: Mapping of symbol to a price or a sequence of prices.
        """
        self._scripts: dict[str, list[float]] = {}
        self._last: dict[str, float] = {}
        self.calls: dict[str, int] = {}
        for symbol, script in (prices or {}).items():
            self.set_price(symbol, script)

    def set_price(self, symbol: str, script: PriceScript) -> None:
        """Set (or replace) the price script for a symbol."""
        values = list(script) if isinstance(script, (list, tuple)) else [script]
        if not values:
            raise ValueError(f"Empty price script for {symbol}")
        self._scripts[symbol.upper()] = [float(v) for v in values]

    def remove(self, symbol: str) -> None:
        """Stop serving prices for a symbol."""
        self._scripts.pop(symbol.upper(), None)

    async def get_price(self, symbol: str) -> PriceQuote:
        """Get the next scripted price for a symbol.

        Raises:
            FeedUnavailable: If the symbol has no price configured.
        """
        symbol = symbol.upper()
        self.calls[symbol] = self.calls.get(symbol, 0) + 1

        script = self._scripts.get(symbol)
        if script is None:
            raise FeedUnavailable(symbol, "no price configured")

        price = script.pop(0) if len(script) > 1 else script[0]
        previous = self._last.get(symbol, price)
        self._last[symbol] = price

        try:
            return PriceQuote(symbol=symbol, price=price, previous_price=previous)
        except ValueError as e:
            raise FeedUnavailable(symbol, f"invalid price: {e}") from e
