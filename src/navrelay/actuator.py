"""Navigation Actuator - points the active tab at a URL."""

from __future__ import annotations

import logging

from .browser import TabController
from .errors import ActuationFailure

logger = logging.getLogger(__name__)


class NavigationActuator:
    """Updates the focused window's active tab.

    Navigation is fire-and-forget: the peer is never told whether it
    happened. With no active tab (no windows open) the call is a no-op.
    """

    def __init__(self, tabs: TabController) -> None:
        self._tabs = tabs

    def navigate(self, url: str) -> bool:
        """Navigate the active tab to ``url``.

        Returns:
            True if a tab was updated, False if there was no active tab.

        Raises:
            ActuationFailure: If the browser rejected the update.
        """
        tab = self._tabs.active_tab()
        if tab is None:
            logger.debug(f"No active tab to navigate to {url}")
            return False

        try:
            self._tabs.update(tab.id, url)
        except Exception as e:
            raise ActuationFailure(f"Failed to navigate tab {tab.id} to {url}: {e}") from e

        logger.debug(f"Navigated tab {tab.id} to {url}")
        return True
