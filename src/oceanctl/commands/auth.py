"""``auth`` -- store the access token in the configuration file.

``oceanctl auth init`` prompts for a token (or takes the one given with the
global ``--access-token``) and writes it to the config file as the
``access-token`` key, where the resolver picks it up as a file value on
every later run::

    $ oceanctl auth init
    Enter your access token: ****
    Saved access token to ~/.config/oceanctl/config.yaml
"""

from __future__ import annotations

import typer

from oceanctl.commands.builder import ARG_ACCESS_TOKEN, CommandBuilder
from oceanctl.commands.runner import CmdConfig
from oceanctl.config import Source, save_config_value
from oceanctl.exceptions import MissingValueError
from oceanctl.output import debug, success


def auth_command() -> CommandBuilder:
    cmd = CommandBuilder("auth", help="authentication commands")
    cmd.command("init", run_auth_init, help="initialize configuration")
    return cmd


def run_auth_init(c: CmdConfig) -> None:
    token = ""
    if c.config.source_of(ARG_ACCESS_TOKEN) == Source.FLAG:
        token = c.config.get_string(ARG_ACCESS_TOKEN)
    if not token:
        token = typer.prompt("Enter your access token", hide_input=True, err=True)
    token = token.strip()
    if not token:
        raise MissingValueError(ARG_ACCESS_TOKEN)

    path = save_config_value(ARG_ACCESS_TOKEN, token)
    debug(f"wrote {path}")
    success(f"Saved access token to {path}")
