"""
Delivery manager status provider.

Tracks the signed-in delivery manager's own availability (online, busy,
offline). Managers may switch between online and offline themselves; busy
is owned by the server and only changes when a delivery completes (or when
a reset finds no active deliveries).
"""

from __future__ import annotations

from typing import Optional

from core.api_client import BookstoreAPIClient
from core.exceptions import BookstoreClientError
from models.delivery import DeliveryStatus, ManagerStatus, MANUAL_STATUSES
from logging_config import get_logger
from .provider import BaseProvider


# Module logger
logger = get_logger(__name__)

NO_TOKEN_MESSAGE = "No authentication token available. Please login again."
INVALID_STATUS_MESSAGE = "Invalid status. You can only manually change between online and offline."
BUSY_MESSAGE = (
    "Cannot change status manually while busy. "
    "Status will automatically change to online when delivery is completed."
)


class DeliveryStatusProvider(BaseProvider):
    """
    Holds a DeliveryStatus snapshot.

    The snapshot is frozen and replaced on every change, so readers on other
    threads never see a status paired with the wrong can_change_manually.
    """

    def __init__(self, client: BookstoreAPIClient):
        super().__init__(client)
        self._snapshot = DeliveryStatus()

    @property
    def snapshot(self) -> DeliveryStatus:
        return self._snapshot

    @property
    def status(self) -> ManagerStatus:
        return self._snapshot.status

    @property
    def current_status(self) -> str:
        return self._snapshot.status.value

    @property
    def can_change_manually(self) -> bool:
        return self._snapshot.can_change_manually

    @property
    def is_online(self) -> bool:
        return self.status == ManagerStatus.ONLINE

    @property
    def is_busy(self) -> bool:
        return self.status == ManagerStatus.BUSY

    @property
    def is_offline(self) -> bool:
        return self.status == ManagerStatus.OFFLINE

    def clear(self) -> None:
        self._snapshot = DeliveryStatus()
        super().clear()

    def load_current_status(self) -> bool:
        """
        Fetch the status from the server.

        A busy result triggers one reset attempt; when the server reports
        the reset happened, the status is fetched again. Reset failures are
        logged and otherwise ignored.

        Returns:
            True if the status was loaded. Without a token nothing is
            fetched and False is returned with no error set.
        """
        if not self._client.is_authenticated:
            logger.debug("No auth token available - skipping status load")
            return False

        with self._loading():
            try:
                self._snapshot = DeliveryStatus.from_dict(self._client.get_delivery_status())
            except BookstoreClientError as e:
                self._fail("Error loading status", e)
                return False

            if self.is_busy:
                logger.info("Status is busy, attempting reset...")
                self._try_reset()

            logger.debug(f"Delivery status: {self.current_status}")
            return True

    def _try_reset(self) -> None:
        try:
            result = self._client.reset_delivery_status()
            if result.get("was_reset"):
                logger.info("Status reset from busy")
                self._snapshot = DeliveryStatus.from_dict(self._client.get_delivery_status())
        except BookstoreClientError as e:
            logger.warning(f"Status reset attempt failed (non-critical): {e}")

    def update_status(self, new_status: str) -> bool:
        """
        Switch between online and offline.

        Returns:
            True if the status is now new_status (including when it already
            was); False with error set otherwise.
        """
        if not self._client.is_authenticated:
            self._fail(NO_TOKEN_MESSAGE)
            self.notify_listeners()
            return False

        requested = ManagerStatus.parse(new_status)
        if requested not in MANUAL_STATUSES:
            self._fail(INVALID_STATUS_MESSAGE)
            self.notify_listeners()
            return False

        if requested == self.status:
            logger.debug(f"Status is already {requested.value}, no update needed")
            return True

        if self.is_busy:
            self._fail(BUSY_MESSAGE)
            self.notify_listeners()
            return False

        with self._loading():
            try:
                data = self._client.update_delivery_status(requested.value)
            except BookstoreClientError as e:
                self._fail("Error updating status", e)
                return False

            status = ManagerStatus.parse(data.get("delivery_status") or data.get("current_status")) or requested
            can_change = data.get("can_change_manually")
            self._snapshot = DeliveryStatus(
                status=status,
                can_change_manually=bool(can_change) if can_change is not None else status != ManagerStatus.BUSY,
            )
            logger.info(f"Delivery status changed to {status.value}")
            return True

    def set_status_locally(self, status: str) -> None:
        """
        Apply a status reported elsewhere (e.g. in an action response)
        without calling the server. Unknown values are ignored.
        """
        parsed = ManagerStatus.parse(status)
        if parsed is None:
            logger.warning(f"Ignoring unknown delivery status: {status!r}")
            return
        self._snapshot = DeliveryStatus(status=parsed, can_change_manually=parsed != ManagerStatus.BUSY)
        self.notify_listeners()

    def reset_status(self) -> Optional[bool]:
        """
        Ask the server to clear a stuck busy status.

        Returns:
            Whether the server reset the status, or None on failure
        """
        with self._loading():
            try:
                result = self._client.reset_delivery_status()
            except BookstoreClientError as e:
                self._fail("Error resetting status", e)
                return None
            status = ManagerStatus.parse(result.get("delivery_status") or result.get("current_status"))
            if status is not None:
                self._snapshot = DeliveryStatus(status=status, can_change_manually=status != ManagerStatus.BUSY)
            return bool(result.get("was_reset"))
