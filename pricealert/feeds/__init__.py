"""Price feed implementations for pricealert."""

from pricealert.feeds.base import BasePriceFeed
from pricealert.feeds.http import HttpPriceFeed
from pricealert.feeds.static import StaticPriceFeed

__all__ = [
    "BasePriceFeed",
    "HttpPriceFeed",
    "StaticPriceFeed",
]
