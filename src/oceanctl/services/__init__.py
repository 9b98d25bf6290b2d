"""Typed wrappers around the API endpoints used by the commands.

:class:`Services` is handed to every handler through
:class:`~oceanctl.commands.runner.CmdConfig`. It opens the API client on first
use, so commands that never talk to the API (``auth init``) need no token.
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import Callable, Optional

from oceanctl.client import ApiClient
from oceanctl.services.account import AccountService
from oceanctl.services.drives import DriveActionService, DriveService
from oceanctl.services.droplets import DropletService

__all__ = [
    "AccountService",
    "DriveActionService",
    "DriveService",
    "DropletService",
    "Services",
]


class Services:
    """Lazily connected service container.

    Args:
        client_factory: Returns an unopened :class:`ApiClient`; called at
            most once.
    """

    def __init__(self, client_factory: Callable[[], ApiClient]) -> None:
        self._client_factory = client_factory
        self._client: Optional[ApiClient] = None
        self._stack = ExitStack()

    @property
    def client(self) -> ApiClient:
        if self._client is None:
            self._client = self._stack.enter_context(self._client_factory())
        return self._client

    @property
    def account(self) -> AccountService:
        return AccountService(self.client)

    @property
    def drives(self) -> DriveService:
        return DriveService(self.client)

    @property
    def drive_actions(self) -> DriveActionService:
        return DriveActionService(self.client)

    @property
    def droplets(self) -> DropletService:
        return DropletService(self.client)

    def close(self) -> None:
        self._stack.close()
        self._client = None
