"""``account`` -- information about the authenticated account."""

from __future__ import annotations

from oceanctl.commands.builder import CommandBuilder
from oceanctl.commands.runner import CmdConfig
from oceanctl.display import AccountDisplay


def account_command() -> CommandBuilder:
    cmd = CommandBuilder("account", help="account commands")
    cmd.command("get", run_account_get, help="get account", aliases=("g",)).displays(
        AccountDisplay
    )
    return cmd


def run_account_get(c: CmdConfig) -> None:
    c.display(AccountDisplay([c.services.account.get()]))
