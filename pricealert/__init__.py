"""pricealert - price alert monitoring core."""

__version__ = "0.1.0"
