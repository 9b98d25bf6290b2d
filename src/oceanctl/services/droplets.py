"""Droplet service.

Besides the plain CRUD calls, :meth:`DropletService.create` can wait for the
droplet to become active by polling the ``create`` action referenced in the
response's ``links.actions``.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from oceanctl.client import ApiClient
from oceanctl.exceptions import RemoteAPIError
from oceanctl.models import Action, Droplet, DropletCreateRequest, Image, Kernel, Links
from oceanctl.services.base import Service

logger = logging.getLogger(__name__)

DROPLETS_PATH = "v2/droplets"
ACTIONS_PATH = "v2/actions"

POLL_INTERVAL = 5.0
"""Seconds between two polls of a pending action."""


class DropletService(Service):
    """Droplet endpoints.

    Args:
        client: An opened API client.
        poll_interval: Seconds to sleep between action polls when waiting.
    """

    def __init__(self, client: ApiClient, poll_interval: float = POLL_INTERVAL) -> None:
        super().__init__(client)
        self.poll_interval = poll_interval

    def list(self) -> list[Droplet]:
        return self._list(DROPLETS_PATH, "droplets", Droplet)

    def get(self, droplet_id: int) -> Droplet:
        return self._get(f"{DROPLETS_PATH}/{droplet_id}", "droplet", Droplet)

    def create(self, request: DropletCreateRequest, wait: bool = False) -> Droplet:
        """Create one droplet.

        Args:
            request: The droplet to create.
            wait: Block until the create action completes, then return the
                refreshed droplet.

        Raises:
            RemoteAPIError: If the create action errors out while waiting.
        """
        body = self.client.post(DROPLETS_PATH, json_body=request.payload()) or {}
        droplet = Droplet.model_validate(body.get("droplet") or {})
        if not wait:
            return droplet

        links = Links.model_validate(body.get("links") or {})
        for ref in links.actions:
            if ref.get("rel") == "create" and ref.get("id") is not None:
                self.wait_for_action(int(ref["id"]))
                break
        return self.get(droplet.id)

    def wait_for_action(self, action_id: int) -> Action:
        """Poll an action until it leaves the ``in-progress`` state."""
        while True:
            action = self._get(f"{ACTIONS_PATH}/{action_id}", "action", Action)
            if action.status == "completed":
                return action
            if action.status == "errored":
                raise RemoteAPIError(f"action {action_id} ({action.type}) errored")
            logger.debug("action %d is %s", action_id, action.status or "pending")
            time.sleep(self.poll_interval)

    def delete(self, droplet_id: int) -> None:
        self.client.delete(f"{DROPLETS_PATH}/{droplet_id}")

    def actions(self, droplet_id: int) -> list[Action]:
        return self._list(f"{DROPLETS_PATH}/{droplet_id}/actions", "actions", Action)

    def backups(self, droplet_id: int) -> list[Image]:
        return self._list(f"{DROPLETS_PATH}/{droplet_id}/backups", "backups", Image)

    def snapshots(self, droplet_id: int) -> list[Image]:
        return self._list(f"{DROPLETS_PATH}/{droplet_id}/snapshots", "snapshots", Image)

    def kernels(self, droplet_id: int) -> list[Kernel]:
        return self._list(f"{DROPLETS_PATH}/{droplet_id}/kernels", "kernels", Kernel)

    def neighbors(self, droplet_id: int) -> list[Droplet]:
        """Return droplets running on the same physical hardware (not paginated)."""
        body = self.client.get(f"{DROPLETS_PATH}/{droplet_id}/neighbors") or {}
        return [Droplet.model_validate(raw) for raw in body.get("droplets") or []]

    def find_by_name(self, name: str, droplets: Optional[list[Droplet]] = None) -> list[Droplet]:
        """Return every droplet called *name*."""
        candidates = self.list() if droplets is None else droplets
        return [d for d in candidates if d.name == name]
