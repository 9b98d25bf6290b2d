"""Block storage drives and their attachments.

Drives live under ``v2/storage/drives``. Attaching and detaching are not
actions on the drive itself but operations on the
``v2/storage/drives/attachments`` collection: ``POST`` attaches, ``DELETE``
detaches, both taking the drive ID in the body.
"""

from __future__ import annotations

import logging
from typing import Optional

from oceanctl.models import Drive, DriveCreateRequest
from oceanctl.services.base import Service

logger = logging.getLogger(__name__)

DRIVES_PATH = "v2/storage/drives"
ATTACHMENTS_PATH = f"{DRIVES_PATH}/attachments"


class DriveService(Service):
    """List, create, fetch and delete drives."""

    def list(self, region: Optional[str] = None) -> list[Drive]:
        """Return every drive, optionally only those in *region*."""
        params = {"region": region} if region else None
        return self._list(DRIVES_PATH, "drives", Drive, params=params)

    def create(self, request: DriveCreateRequest) -> Drive:
        body = self.client.post(DRIVES_PATH, json_body=request.model_dump()) or {}
        return Drive.model_validate(body.get("drive") or {})

    def get(self, drive_id: str) -> Drive:
        return self._get(f"{DRIVES_PATH}/{drive_id}", "drive", Drive)

    def delete(self, drive_id: str) -> None:
        self.client.delete(f"{DRIVES_PATH}/{drive_id}")


class DriveActionService(Service):
    """Attach drives to droplets and detach them."""

    def attach(self, drive_id: str, droplet_id: int) -> None:
        logger.debug("attaching drive %s to droplet %d", drive_id, droplet_id)
        self.client.post(
            ATTACHMENTS_PATH, json_body={"droplet_id": droplet_id, "drive_id": drive_id}
        )

    def detach(self, drive_id: str) -> None:
        logger.debug("detaching drive %s", drive_id)
        self.client.delete(ATTACHMENTS_PATH, json_body={"drive_id": drive_id})
