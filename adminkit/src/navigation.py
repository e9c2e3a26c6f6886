"""
Navigation target for page controllers.

Controllers push routes here instead of talking to a router directly.
The history is kept so front ends (and tests) can see where the user went.
"""

import logging
from typing import Callable, List, Optional

from adminkit.src.entities import LANDING_ROUTE


logger = logging.getLogger("adminkit.navigation")


class Navigator:
    """
    Records route changes and forwards them to an optional listener.

    Attributes:
        history: Routes pushed so far, oldest first
    """

    def __init__(self, on_navigate: Optional[Callable[[str], None]] = None):
        self.history: List[str] = []
        self._on_navigate = on_navigate

    @property
    def current(self) -> str:
        """The most recently pushed route, or the landing route."""
        return self.history[-1] if self.history else LANDING_ROUTE

    def push(self, route: str) -> None:
        logger.debug(f"Navigate to {route}")
        self.history.append(route)
        if self._on_navigate is not None:
            self._on_navigate(route)
