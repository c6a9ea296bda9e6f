"""Alert storage for pricealert."""

from pricealert.db.base import BaseAlertStore
from pricealert.db.store import AlertStore

__all__ = [
    "AlertStore",
    "BaseAlertStore",
]
