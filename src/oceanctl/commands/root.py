"""Assembly of the complete oceanctl command tree.

::

    oceanctl
    +-- account get
    +-- auth init
    +-- compute
        +-- drive          list | create | delete | get
        +-- drive-action   attach | detach
        +-- droplet        actions | backups | create | delete | get |
                           kernels | list | neighbors | snapshots
"""

from __future__ import annotations

from oceanctl.client import DEFAULT_API_URL
from oceanctl.commands.account import account_command
from oceanctl.commands.auth import auth_command
from oceanctl.commands.builder import (
    ARG_ACCESS_TOKEN,
    ARG_API_URL,
    ARG_OUTPUT,
    ARG_TRACE,
    ARG_VERBOSE,
    CommandBuilder,
    CommandNode,
)
from oceanctl.commands.drive import drive_action_command, drive_command
from oceanctl.commands.droplet import droplet_command
from oceanctl.config import NS_ROOT


def root_command() -> CommandBuilder:
    """Return the root builder with the global flags and every command group."""
    root = CommandBuilder(
        NS_ROOT,
        help="oceanctl is a command line interface for the DigitalOcean API.",
        root=True,
    )
    root.add_string_flag(ARG_ACCESS_TOKEN, "", "API access token", shorthand="t", env=True)
    root.add_string_flag(ARG_OUTPUT, "text", "Output format: text or json", shorthand="o")
    root.add_string_flag(ARG_API_URL, DEFAULT_API_URL, "Override the API endpoint", env=True)
    root.add_bool_flag(ARG_VERBOSE, False, "Verbose output", shorthand="v")
    root.add_bool_flag(ARG_TRACE, False, "Trace API calls")

    root.add(account_command())
    root.add(auth_command())

    compute = root.command("compute", help="compute commands")
    compute.add(drive_command())
    compute.add(drive_action_command())
    compute.add(droplet_command())
    return root


def build_tree() -> CommandNode:
    """Build the frozen command tree."""
    return root_command().build()
