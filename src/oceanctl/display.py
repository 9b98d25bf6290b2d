"""Render resources as tables or JSON.

Each resource type has a :class:`Displayable` subclass that names its
columns and turns one model into a row. :func:`render` picks the columns
requested with ``--format``, applies ``--no-header`` and writes through the
installed :class:`~oceanctl.output.OutputManager`:

* text output -- a table (Rich on a terminal, tab-separated when piped);
* ``-o json`` -- the full API objects as returned by the server.

Example::

    render(DriveDisplay(drives), columns=["ID", "Name"], no_header=True)
"""

from __future__ import annotations

from typing import Any, ClassVar, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel

from oceanctl.exceptions import InvalidUsageError
from oceanctl.models import Account, Action, Drive, Droplet, Image, Kernel
from oceanctl.output import OutputFormat, OutputManager, get_output

M = TypeVar("M", bound=BaseModel)


class Displayable(Generic[M]):
    """A list of models together with the way to tabulate them.

    Subclasses set :attr:`columns` (the names accepted by ``--format``, in
    default order), optionally :attr:`headers` (column name to header label)
    and implement :meth:`row`.
    """

    columns: ClassVar[tuple[str, ...]] = ()
    headers: ClassVar[dict[str, str]] = {}

    def __init__(self, items: Sequence[M]) -> None:
        self.items = list(items)

    def row(self, item: M) -> dict[str, Any]:
        raise NotImplementedError

    def rows(self) -> list[dict[str, Any]]:
        return [self.row(item) for item in self.items]

    def json_data(self) -> Any:
        return [item.model_dump(mode="json") for item in self.items]


class DriveDisplay(Displayable[Drive]):
    columns = ("ID", "Name", "Size", "Region", "Description", "DropletID")
    headers = {"DropletID": "Droplet ID"}

    def row(self, item: Drive) -> dict[str, Any]:
        return {
            "ID": item.id,
            "Name": item.name,
            "Size": f"{item.size_gigabytes} GiB",
            "Region": item.region.slug,
            "Description": item.description,
            "DropletID": item.attached_to_droplet_id or "",
        }


class DropletDisplay(Displayable[Droplet]):
    columns = (
        "ID",
        "Name",
        "PublicIPv4",
        "Memory",
        "VCPUs",
        "Disk",
        "Region",
        "Image",
        "Status",
    )
    headers = {"PublicIPv4": "Public IPv4"}

    def row(self, item: Droplet) -> dict[str, Any]:
        image = item.image
        return {
            "ID": item.id,
            "Name": item.name,
            "PublicIPv4": item.public_ipv4(),
            "Memory": item.memory,
            "VCPUs": item.vcpus,
            "Disk": item.disk,
            "Region": item.region.slug,
            "Image": f"{image.distribution} {image.name}".strip(),
            "Status": item.status,
        }


class ImageDisplay(Displayable[Image]):
    columns = ("ID", "Name", "Type", "Distribution", "Slug", "Public", "MinDisk")
    headers = {"MinDisk": "Min Disk"}

    def row(self, item: Image) -> dict[str, Any]:
        return {
            "ID": item.id,
            "Name": item.name,
            "Type": item.type,
            "Distribution": item.distribution,
            "Slug": item.slug or "",
            "Public": item.public,
            "MinDisk": item.min_disk_size,
        }


class ActionDisplay(Displayable[Action]):
    columns = (
        "ID",
        "Status",
        "Type",
        "StartedAt",
        "CompletedAt",
        "ResourceID",
        "ResourceType",
        "Region",
    )
    headers = {
        "StartedAt": "Started At",
        "CompletedAt": "Completed At",
        "ResourceID": "Resource ID",
        "ResourceType": "Resource Type",
    }

    def row(self, item: Action) -> dict[str, Any]:
        return {
            "ID": item.id,
            "Status": item.status,
            "Type": item.type,
            "StartedAt": item.started_at,
            "CompletedAt": item.completed_at,
            "ResourceID": item.resource_id,
            "ResourceType": item.resource_type,
            "Region": item.region_slug,
        }


class KernelDisplay(Displayable[Kernel]):
    columns = ("ID", "Name", "Version")

    def row(self, item: Kernel) -> dict[str, Any]:
        return {"ID": item.id, "Name": item.name, "Version": item.version}


class AccountDisplay(Displayable[Account]):
    """A single account; JSON output is the bare object."""

    columns = ("Email", "DropletLimit", "EmailVerified", "UUID", "Status")
    headers = {"DropletLimit": "Droplet Limit", "EmailVerified": "Email Verified"}

    def row(self, item: Account) -> dict[str, Any]:
        return {
            "Email": item.email,
            "DropletLimit": item.droplet_limit,
            "EmailVerified": item.email_verified,
            "UUID": item.uuid,
            "Status": item.status,
        }

    def json_data(self) -> Any:
        data = super().json_data()
        return data[0] if len(data) == 1 else data


# --- Rendering ---


def select_columns(item: Displayable[Any], requested: Sequence[str]) -> list[str]:
    """Return the columns to show: *requested* in the given order, or all.

    Matching is case-insensitive.

    Raises:
        InvalidUsageError: If a requested column does not exist.
    """
    if not requested:
        return list(item.columns)
    by_lower = {c.lower(): c for c in item.columns}
    selected = []
    for name in requested:
        column = by_lower.get(name.strip().lower())
        if column is None:
            raise InvalidUsageError(
                f"unknown column {name!r}; possible values: {','.join(item.columns)}"
            )
        selected.append(column)
    return selected


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def render(
    item: Displayable[Any],
    columns: Sequence[str] = (),
    no_header: bool = False,
    output: Optional[OutputManager] = None,
) -> None:
    """Write *item* to stdout in the active output format.

    Args:
        item: What to show.
        columns: Column names from ``--format``; empty selects all columns.
        no_header: Omit the header row (text output only).
        output: Output manager to use; defaults to the installed one.
    """
    out = output or get_output()
    selected = select_columns(item, columns)

    if out.format == OutputFormat.JSON:
        out.print_json(item.json_data())
        return

    headers = [item.headers.get(c, c) for c in selected]
    rows = [[_cell(row.get(c)) for c in selected] for row in item.rows()]
    out.print_table(headers, rows, show_header=not no_header)
