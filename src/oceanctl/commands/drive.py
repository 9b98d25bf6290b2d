"""``compute drive`` and ``compute drive-action`` -- block storage commands.

Typical workflow::

    oceanctl compute drive create data-1 --region nyc1 --desc "db volume"
    oceanctl compute drive-action attach <drive-id> <droplet-id>
    oceanctl compute drive-action detach <drive-id>
    oceanctl compute drive delete <drive-id>
"""

from __future__ import annotations

from oceanctl.commands.builder import CommandBuilder
from oceanctl.commands.droplet import parse_droplet_id
from oceanctl.commands.runner import CmdConfig
from oceanctl.display import DriveDisplay
from oceanctl.exceptions import MissingArgumentsError
from oceanctl.models import DriveCreateRequest
from oceanctl.output import success

ARG_DRIVE_ID = "drive-id"
ARG_REGION = "region"
ARG_SIZE = "size"
ARG_DESC = "desc"


def drive_command() -> CommandBuilder:
    """Return the ``drive`` group."""
    cmd = CommandBuilder("drive", help="drive commands")

    cmd_list = cmd.command("list", run_drive_list, help="list drives", aliases=("ls",))
    cmd_list.displays(DriveDisplay)
    cmd_list.add_string_flag(ARG_REGION, "", "Drive region")

    cmd_create = cmd.command(
        "create", run_drive_create, help="create a drive", args="NAME", aliases=("c",)
    )
    cmd_create.displays(DriveDisplay)
    cmd_create.add_int_flag(ARG_SIZE, 100, "Size of the drive (GiB)", required=True)
    cmd_create.add_string_flag(ARG_DESC, "", "Drive description", required=True)
    cmd_create.add_string_flag(ARG_REGION, "", "Drive region", required=True)

    cmd.command("delete", run_drive_delete, help="delete a drive", args="ID", aliases=("rm",))

    cmd_get = cmd.command("get", run_drive_get, help="get a drive", aliases=("g",))
    cmd_get.displays(DriveDisplay)
    cmd_get.add_string_flag(ARG_DRIVE_ID, "", "ID of the drive to fetch", required=True)
    cmd_get.add_string_flag(ARG_REGION, "", "Region the drive is in", required=True)

    return cmd


def drive_action_command() -> CommandBuilder:
    """Return the ``drive-action`` group."""
    cmd = CommandBuilder("drive-action", help="drive action commands")
    cmd.command(
        "attach",
        run_drive_attach,
        help="attach a drive to a droplet",
        args="DRIVE_ID DROPLET_ID",
        aliases=("a",),
    )
    cmd.command(
        "detach", run_drive_detach, help="detach a drive", args="DRIVE_ID", aliases=("d",)
    )
    return cmd


# ----- drive ----- #


def run_drive_list(c: CmdConfig) -> None:
    drives = c.services.drives.list(region=c.get_string(ARG_REGION) or None)
    c.display(DriveDisplay(drives))


def run_drive_create(c: CmdConfig) -> None:
    if not c.args:
        raise MissingArgumentsError(c.ns)

    request = DriveCreateRequest(
        name=c.args[0],
        region=c.get_string(ARG_REGION),
        size_gigabytes=c.get_int(ARG_SIZE),
        description=c.get_string(ARG_DESC),
    )
    drive = c.services.drives.create(request)
    c.display(DriveDisplay([drive]))


def run_drive_delete(c: CmdConfig) -> None:
    if not c.args:
        raise MissingArgumentsError(c.ns)

    drive_id = c.args[0]
    c.services.drives.delete(drive_id)
    success(f"Deleted drive {drive_id}")


def run_drive_get(c: CmdConfig) -> None:
    # The API looks drives up by ID alone; --region is required but unused.
    drive = c.services.drives.get(c.get_string(ARG_DRIVE_ID))
    c.display(DriveDisplay([drive]))


# ----- drive-action ----- #


def run_drive_attach(c: CmdConfig) -> None:
    if len(c.args) != 2:
        raise MissingArgumentsError(c.ns)

    drive_id = c.args[0]
    droplet_id = parse_droplet_id(c.args[1])
    c.services.drive_actions.attach(drive_id, droplet_id)
    success(f"attached {drive_id} to {droplet_id}")


def run_drive_detach(c: CmdConfig) -> None:
    if not c.args:
        raise MissingArgumentsError(c.ns)

    drive_id = c.args[0]
    c.services.drive_actions.detach(drive_id)
    success(f"detached {drive_id}")
