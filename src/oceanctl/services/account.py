"""Account service."""

from __future__ import annotations

from oceanctl.models import Account
from oceanctl.services.base import Service


class AccountService(Service):
    def get(self) -> Account:
        """Return the account owning the access token."""
        return self._get("v2/account", "account", Account)
