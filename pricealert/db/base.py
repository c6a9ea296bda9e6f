"""Alert store interface used by the monitor."""

from abc import ABC, abstractmethod
from typing import Optional

from pricealert.models import PriceAlert, PriceAlertTrigger


class BaseAlertStore(ABC):
    """Abstract base class for alert storage.

    The monitor only needs the operations below. Every call works on a
    single alert, so no lock over the whole active-alert set is ever held.
    """

    @abstractmethod
    def list_active_alerts(self) -> list[PriceAlert]:
        """Get all alerts with is_active set.

        Returns:
            Snapshot of the active alerts.
        """
        pass

    @abstractmethod
    def update_alert(
        self,
        alert_id: str,
        current_value: float,
        is_active: Optional[bool] = None,
    ) -> bool:
        """Update the monitor-owned fields of an alert.

        Args:
            alert_id: Alert ID.
            current_value: Last observed price.
            is_active: New active flag, or None to leave it unchanged.

        Returns:
            True if the alert exists and was updated.
        """
        pass

    @abstractmethod
    def insert_trigger(self, trigger: PriceAlertTrigger) -> None:
        """Append a trigger record.

        Args:
            trigger: Trigger to insert.
        """
        pass

    @abstractmethod
    def commit_trigger(
        self,
        trigger: PriceAlertTrigger,
        current_value: float,
        deactivate: bool,
    ) -> bool:
        """Insert a trigger and update its alert as one unit.

        Either both writes are committed or neither is.

        Args:
            trigger: Trigger to insert.
            current_value: Last observed price for the alert.
            deactivate: Set is_active to false (one-shot alerts). The
                commit only happens if the alert is still active.

        Returns:
            True if committed, False if the alert no longer exists or
            (when deactivating) was already inactive.
        """
        pass
