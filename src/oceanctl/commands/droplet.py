"""``compute droplet`` -- droplet commands.

``create`` accepts several names and creates the droplets concurrently (see
:func:`oceanctl.batch.run_batch`); every droplet that was created is shown,
and the command fails afterwards if any of them could not be. ``delete``
accepts IDs or names; names are resolved against the droplet list before
anything is deleted.
"""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Any

from oceanctl.batch import run_batch
from oceanctl.commands.builder import CommandBuilder
from oceanctl.commands.runner import CmdConfig
from oceanctl.display import ActionDisplay, DropletDisplay, ImageDisplay, KernelDisplay
from oceanctl.exceptions import (
    AmbiguousResourceError,
    InvalidUsageError,
    MissingArgumentsError,
)
from oceanctl.models import (
    Droplet,
    DropletCreateImage,
    DropletCreateRequest,
    DropletCreateSSHKey,
    DropletDriveRequest,
)
from oceanctl.output import success

ARG_REGION = "region"
ARG_SIZE = "size"
ARG_IMAGE = "image"
ARG_SSH_KEYS = "ssh-keys"
ARG_USER_DATA = "user-data"
ARG_USER_DATA_FILE = "user-data-file"
ARG_WAIT = "wait"
ARG_BACKUPS = "enable-backups"
ARG_IPV6 = "enable-ipv6"
ARG_PRIVATE_NETWORKING = "enable-private-networking"
ARG_DRIVES = "drives"


def droplet_command() -> CommandBuilder:
    """Return the ``droplet`` group."""
    cmd = CommandBuilder("droplet", help="droplet commands", aliases=("d",))

    cmd.command(
        "actions", run_droplet_actions, help="droplet actions", args="DROPLET_ID", aliases=("a",)
    ).displays(ActionDisplay)

    cmd.command(
        "backups", run_droplet_backups, help="droplet backups", args="DROPLET_ID", aliases=("b",)
    ).displays(ImageDisplay)

    create = cmd.command(
        "create", run_droplet_create, help="create droplets", args="NAME [NAME ...]", aliases=("c",)
    )
    create.displays(DropletDisplay)
    create.add_string_list_flag(ARG_SSH_KEYS, [], "SSH key IDs or fingerprints")
    create.add_string_flag(ARG_USER_DATA, "", "User data")
    create.add_string_flag(ARG_USER_DATA_FILE, "", "User data file")
    create.add_bool_flag(ARG_WAIT, False, "Wait for the droplets to be created")
    create.add_string_flag(ARG_REGION, "", "Droplet region", required=True)
    create.add_string_flag(ARG_SIZE, "", "Droplet size", required=True)
    create.add_bool_flag(ARG_BACKUPS, False, "Enable backups")
    create.add_bool_flag(ARG_IPV6, False, "Enable IPv6")
    create.add_bool_flag(ARG_PRIVATE_NETWORKING, False, "Enable private networking")
    create.add_string_flag(ARG_IMAGE, "", "Droplet image ID or slug", required=True)
    create.add_string_list_flag(ARG_DRIVES, [], "Drive IDs to attach")

    cmd.command(
        "delete",
        run_droplet_delete,
        help="delete droplets by ID or name",
        args="ID|NAME [ID|NAME ...]",
        aliases=("d", "del", "rm"),
    )

    cmd.command(
        "get", run_droplet_get, help="get a droplet", args="DROPLET_ID", aliases=("g",)
    ).displays(DropletDisplay)

    cmd.command(
        "kernels", run_droplet_kernels, help="droplet kernels", args="DROPLET_ID", aliases=("k",)
    ).displays(KernelDisplay)

    cmd_list = cmd.command(
        "list", run_droplet_list, help="list droplets", args="[GLOB ...]", aliases=("ls",)
    )
    cmd_list.displays(DropletDisplay)
    cmd_list.add_string_flag(ARG_REGION, "", "Only list droplets in this region")

    cmd.command(
        "neighbors",
        run_droplet_neighbors,
        help="droplet neighbors",
        args="DROPLET_ID",
        aliases=("n",),
    ).displays(DropletDisplay)

    cmd.command(
        "snapshots",
        run_droplet_snapshots,
        help="droplet snapshots",
        args="DROPLET_ID",
        aliases=("s",),
    ).displays(ImageDisplay)

    return cmd


# ----- argument helpers ----- #


def parse_droplet_id(raw: str) -> int:
    """Parse a droplet ID argument.

    Raises:
        InvalidUsageError: If *raw* is not a positive integer.
    """
    if not raw.isdigit() or int(raw) < 1:
        raise InvalidUsageError(f"invalid droplet id {raw!r}")
    return int(raw)


def droplet_id_arg(c: CmdConfig) -> int:
    """Return the single droplet ID positional argument."""
    if len(c.args) != 1:
        raise MissingArgumentsError(c.ns)
    return parse_droplet_id(c.args[0])


def extract_ssh_keys(keys: list[str]) -> list[DropletCreateSSHKey]:
    """Turn ``--ssh-keys`` values into key references.

    Numeric values are key IDs (non-positive ones are ignored); anything
    else is a fingerprint.
    """
    refs = []
    for key in keys:
        key = key.strip()
        if key.lstrip("-").isdigit():
            if int(key) > 0:
                refs.append(DropletCreateSSHKey(id=int(key)))
            continue
        if key:
            refs.append(DropletCreateSSHKey(fingerprint=key))
    return refs


def extract_user_data(user_data: str, filename: str) -> str:
    """Return *user_data*, or the contents of *filename* when no inline data is given."""
    if user_data or not filename:
        return user_data
    try:
        return Path(filename).expanduser().read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidUsageError(f"unable to read user data file {filename}: {exc}") from exc


# ----- handlers ----- #


def run_droplet_actions(c: CmdConfig) -> None:
    droplet_id = droplet_id_arg(c)
    c.display(ActionDisplay(c.services.droplets.actions(droplet_id)))


def run_droplet_backups(c: CmdConfig) -> None:
    droplet_id = droplet_id_arg(c)
    c.display(ImageDisplay(c.services.droplets.backups(droplet_id)))


def run_droplet_create(c: CmdConfig) -> None:
    if not c.args:
        raise MissingArgumentsError(c.ns)

    template: dict[str, Any] = {
        "region": c.get_string(ARG_REGION),
        "size": c.get_string(ARG_SIZE),
        "image": DropletCreateImage.parse(c.get_string(ARG_IMAGE)),
        "ssh_keys": extract_ssh_keys(c.get_string_list(ARG_SSH_KEYS)),
        "backups": c.get_bool(ARG_BACKUPS),
        "ipv6": c.get_bool(ARG_IPV6),
        "private_networking": c.get_bool(ARG_PRIVATE_NETWORKING),
        "user_data": extract_user_data(
            c.get_string(ARG_USER_DATA), c.get_string(ARG_USER_DATA_FILE)
        ),
        "drives": [DropletDriveRequest(id=d) for d in c.get_string_list(ARG_DRIVES)],
    }
    wait = c.get_bool(ARG_WAIT)
    droplets = c.services.droplets

    def _create(name: str) -> Droplet:
        return droplets.create(DropletCreateRequest(name=name, **template), wait=wait)

    def _show(name: str, droplet: Droplet) -> None:
        c.display(DropletDisplay([droplet]))

    report = run_batch(c.args, _create, on_success=_show)
    report.raise_for_failures()


def run_droplet_delete(c: CmdConfig) -> None:
    if not c.args:
        raise MissingArgumentsError(c.ns)

    droplets = c.services.droplets
    listed: list[Droplet] | None = None
    ids: list[int] = []
    for raw in c.args:
        if raw.isdigit():
            ids.append(int(raw))
            continue
        if listed is None:
            listed = droplets.list()
        matches = droplets.find_by_name(raw, listed)
        if len(matches) != 1:
            raise AmbiguousResourceError("droplet", raw, len(matches))
        ids.append(matches[0].id)

    for droplet_id in ids:
        droplets.delete(droplet_id)
        success(f"deleted droplet {droplet_id}")


def run_droplet_get(c: CmdConfig) -> None:
    droplet_id = droplet_id_arg(c)
    c.display(DropletDisplay([c.services.droplets.get(droplet_id)]))


def run_droplet_kernels(c: CmdConfig) -> None:
    droplet_id = droplet_id_arg(c)
    c.display(KernelDisplay(c.services.droplets.kernels(droplet_id)))


def run_droplet_list(c: CmdConfig) -> None:
    region = c.get_string(ARG_REGION)
    patterns = list(c.args)

    matched = []
    for droplet in c.services.droplets.list():
        if patterns and not any(fnmatch.fnmatchcase(droplet.name, p) for p in patterns):
            continue
        if region and droplet.region.slug != region:
            continue
        matched.append(droplet)

    c.display(DropletDisplay(matched))


def run_droplet_neighbors(c: CmdConfig) -> None:
    droplet_id = droplet_id_arg(c)
    c.display(DropletDisplay(c.services.droplets.neighbors(droplet_id)))


def run_droplet_snapshots(c: CmdConfig) -> None:
    droplet_id = droplet_id_arg(c)
    c.display(ImageDisplay(c.services.droplets.snapshots(droplet_id)))
