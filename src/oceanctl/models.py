"""Pydantic models for the API resources and request bodies used by oceanctl.

Resource models accept unknown fields (``extra="allow"``) so that JSON output
(``-o json``) reproduces everything the API returned, while the text
renderer only relies on the declared fields.

**Resources**:
    :class:`Region`, :class:`Drive`, :class:`Droplet`, :class:`Image`,
    :class:`Action`, :class:`Kernel`, :class:`Account`.

**Request bodies**:
    :class:`DriveCreateRequest`, :class:`DropletCreateRequest`,
    :class:`DropletCreateImage`, :class:`DropletCreateSSHKey`,
    :class:`DropletDriveRequest`.

**Pagination envelope**:
    :class:`Links` / :class:`PageLinks` describe the ``links`` object
    returned next to every list.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Resource(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# --- Resources ---


class Region(_Resource):
    """A datacenter region (``nyc1``, ``ams3``, ...)."""

    slug: str = ""
    name: str = ""
    available: bool = True


class Drive(_Resource):
    """A block storage drive."""

    id: str
    name: str = ""
    region: Region = Field(default_factory=Region)
    size_gigabytes: int = 0
    description: str = ""
    created_at: Optional[str] = None
    attached_to_droplet_id: Optional[int] = None


class Image(_Resource):
    """A distribution image, snapshot or backup."""

    id: int = 0
    name: str = ""
    type: str = ""
    distribution: str = ""
    slug: Optional[str] = None
    public: bool = False
    min_disk_size: int = 0
    regions: list[str] = Field(default_factory=list)


class Kernel(_Resource):
    """A kernel available to a droplet."""

    id: int
    name: str = ""
    version: str = ""


class NetworkV4(_Resource):
    ip_address: str = ""
    type: str = ""


class Networks(_Resource):
    v4: list[NetworkV4] = Field(default_factory=list)
    v6: list[dict[str, Any]] = Field(default_factory=list)


class Droplet(_Resource):
    """A virtual machine."""

    id: int
    name: str = ""
    memory: int = 0
    vcpus: int = 0
    disk: int = 0
    status: str = ""
    region: Region = Field(default_factory=Region)
    image: Image = Field(default_factory=Image)
    size_slug: str = ""
    networks: Networks = Field(default_factory=Networks)
    created_at: Optional[str] = None
    drive_ids: list[str] = Field(default_factory=list)

    def public_ipv4(self) -> str:
        """Return the first public IPv4 address, or ``""``."""
        for net in self.networks.v4:
            if net.type == "public":
                return net.ip_address
        return ""


class Action(_Resource):
    """An asynchronous operation performed on a resource."""

    id: int
    status: str = ""
    type: str = ""
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    resource_id: int = 0
    resource_type: str = ""
    region_slug: Optional[str] = None


class Account(_Resource):
    """The account owning the access token."""

    email: str = ""
    uuid: str = ""
    droplet_limit: int = 0
    email_verified: bool = False
    status: str = ""


# --- Pagination envelope ---


class PageLinks(BaseModel):
    first: Optional[str] = None
    prev: Optional[str] = None
    next: Optional[str] = None
    last: Optional[str] = None


class Links(BaseModel):
    model_config = ConfigDict(extra="allow")

    pages: PageLinks = Field(default_factory=PageLinks)
    actions: list[dict[str, Any]] = Field(default_factory=list)


# --- Request bodies ---


class DriveCreateRequest(BaseModel):
    """Body of ``POST /v2/storage/drives``."""

    name: str
    region: str
    size_gigabytes: int
    description: str = ""


class DropletCreateImage(BaseModel):
    """An image reference: numeric ID or slug.

    Serialises to the bare ID or slug, which is what the API expects.
    """

    id: Optional[int] = None
    slug: Optional[str] = None

    @classmethod
    def parse(cls, raw: str) -> DropletCreateImage:
        """Interpret *raw* as an image ID when it is numeric, else as a slug."""
        try:
            return cls(id=int(raw))
        except ValueError:
            return cls(slug=raw)

    def wire(self) -> Union[int, str]:
        return self.id if self.id is not None else (self.slug or "")


class DropletCreateSSHKey(BaseModel):
    """An SSH key reference: numeric ID or fingerprint."""

    id: Optional[int] = None
    fingerprint: Optional[str] = None

    def wire(self) -> Union[int, str]:
        return self.id if self.id is not None else (self.fingerprint or "")


class DropletDriveRequest(BaseModel):
    id: str


class DropletCreateRequest(BaseModel):
    """Body of ``POST /v2/droplets`` for a single droplet."""

    name: str
    region: str
    size: str
    image: DropletCreateImage
    ssh_keys: list[DropletCreateSSHKey] = Field(default_factory=list)
    backups: bool = False
    ipv6: bool = False
    private_networking: bool = False
    user_data: str = ""
    drives: list[DropletDriveRequest] = Field(default_factory=list)

    def payload(self) -> dict[str, Any]:
        """Return the JSON body, with image and key references flattened."""
        body: dict[str, Any] = {
            "name": self.name,
            "region": self.region,
            "size": self.size,
            "image": self.image.wire(),
            "ssh_keys": [k.wire() for k in self.ssh_keys],
            "backups": self.backups,
            "ipv6": self.ipv6,
            "private_networking": self.private_networking,
        }
        if self.user_data:
            body["user_data"] = self.user_data
        if self.drives:
            body["drives"] = [d.id for d in self.drives]
        return body
