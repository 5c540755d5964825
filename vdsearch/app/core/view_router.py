from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from vdsearch.app.schemas.session import ViewName

logger = logging.getLogger(__name__)


class InvalidTransition(ValueError):
    """Raised when an action is not available from the current view."""


def check_admin_password(candidate: Optional[str], secret: str) -> bool:
    """Case-insensitive, whitespace-trimmed comparison against the shared secret."""

    if candidate is None:
        return False
    return candidate.strip().lower() == secret.strip().lower()


@dataclass
class ViewRouter:
    """Selects which screen a client shows.

    ``authenticated`` lives only as long as the router; there is no attempt
    counter and no lockout.
    """

    view: ViewName = "search"
    authenticated: bool = False

    def open_settings(self) -> ViewName:
        self.view = "settings"
        return self.view

    def request_admin(self) -> ViewName:
        self.view = "admin" if self.authenticated else "password"
        return self.view

    def submit_password(self, candidate: Optional[str], secret: str) -> bool:
        if self.view != "password":
            raise InvalidTransition(f"Password cannot be submitted from the {self.view} view")
        if check_admin_password(candidate, secret):
            self.authenticated = True
            self.view = "admin"
            return True
        logger.info("Rejected admin password attempt")
        self.view = "settings"
        return False

    def back(self) -> ViewName:
        self.view = "settings" if self.view == "password" else "search"
        return self.view

    def go_home(self) -> ViewName:
        self.view = "search"
        return self.view
