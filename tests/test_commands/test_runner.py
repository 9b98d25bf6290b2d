"""Tests for oceanctl.commands.runner -- the Typer app built from a command tree.

Covers:
- Required flags are enforced before the handler runs
- flag > env > file > default precedence as seen by handlers
- Global flags before and after the sub-command
- Aliases
- Positional arguments
- Exit codes for handler errors
- The invocation context handed to generated command functions
- --version and the missing-token error of the real application
"""

from __future__ import annotations

import inspect
import json
import typing
from typing import Any

import pytest
import typer
from typer.testing import CliRunner

from oceanctl import __version__
from oceanctl.app import create_app
from oceanctl.commands.builder import CommandBuilder
from oceanctl.commands.runner import CmdConfig, _build_command_function, build_app
from oceanctl.commands.tree import bind_tree
from oceanctl.config import NS_ROOT, Config
from oceanctl.exceptions import NotFoundError
from oceanctl.output import OutputFormat, get_output

runner = CliRunner()


# ---------------------------------------------------------------------------
# A small tree whose handlers record what they resolved
# ---------------------------------------------------------------------------


class Recorder:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def create(self, c: CmdConfig) -> None:
        self.calls.append(
            {
                "args": c.args,
                "region": c.get_string("region"),
                "size": c.get_int("size"),
                "tags": c.get_string_list("tags"),
                "token": c.config.get_string("access-token"),
                "format": get_output().format,
            }
        )

    def fail(self, c: CmdConfig) -> None:
        raise NotFoundError("HTTP 404: drive not found", 404)


def _app(recorder: Recorder, file_values=None, environ=None):
    root = CommandBuilder(NS_ROOT, root=True)
    root.add_string_flag("access-token", "", "token", shorthand="t", env=True)
    root.add_string_flag("output", "text", "Output format", shorthand="o")
    root.add_bool_flag("verbose", False, "Verbose", shorthand="v")
    root.add_bool_flag("trace", False, "Trace")

    drive = root.command("drive", help="drive commands")
    create = drive.command(
        "create", recorder.create, help="create", args="NAME", aliases=("c",)
    )
    create.add_int_flag("size", 100, "Size", required=True)
    create.add_string_flag("region", "", "Region", required=True)
    create.add_string_list_flag("tags", [], "Tags")
    drive.command("get", recorder.fail, help="get")

    tree = root.build()
    config = bind_tree(Config(file_values, environ or {}), tree)
    return build_app(tree, config)


# ---------------------------------------------------------------------------
# Required flags
# ---------------------------------------------------------------------------


class TestRequiredFlags:
    def test_missing_required_flag_blocks_handler(self) -> None:
        recorder = Recorder()
        result = runner.invoke(_app(recorder), ["drive", "create", "data"])

        assert result.exit_code == 2
        assert recorder.calls == []
        assert "(drive.create) command is missing required arguments: --region" in result.output

    def test_required_flag_from_file(self) -> None:
        recorder = Recorder()
        app = _app(recorder, file_values={"drive.create.region": "ams3"})
        result = runner.invoke(app, ["drive", "create", "data"])

        assert result.exit_code == 0, result.output
        assert recorder.calls[0]["region"] == "ams3"

    def test_empty_explicit_value_is_missing(self) -> None:
        recorder = Recorder()
        result = runner.invoke(_app(recorder), ["drive", "create", "data", "--region", ""])
        assert result.exit_code == 2
        assert recorder.calls == []


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestPrecedence:
    def test_default(self) -> None:
        recorder = Recorder()
        runner.invoke(_app(recorder), ["drive", "create", "x", "--region", "nyc1"])
        assert recorder.calls[0]["size"] == 100

    def test_file_beats_default(self) -> None:
        recorder = Recorder()
        app = _app(recorder, file_values={"drive.create.size": 250})
        runner.invoke(app, ["drive", "create", "x", "--region", "nyc1"])
        assert recorder.calls[0]["size"] == 250

    def test_flag_beats_file(self) -> None:
        recorder = Recorder()
        app = _app(recorder, file_values={"drive.create.size": 250})
        runner.invoke(app, ["drive", "create", "x", "--region", "nyc1", "--size", "10"])
        assert recorder.calls[0]["size"] == 10

    def test_flag_equal_to_default_still_wins(self) -> None:
        recorder = Recorder()
        app = _app(recorder, file_values={"drive.create.size": 250})
        runner.invoke(app, ["drive", "create", "x", "--region", "nyc1", "--size", "100"])
        assert recorder.calls[0]["size"] == 100

    def test_env_beats_file_flag_beats_env(self) -> None:
        recorder = Recorder()
        app = _app(
            recorder,
            file_values={"access-token": "file", "drive.create.region": "nyc1"},
            environ={"DIGITALOCEAN_ACCESS_TOKEN": "env"},
        )
        runner.invoke(app, ["drive", "create", "x"])
        runner.invoke(app, ["-t", "flag", "drive", "create", "x"])
        assert [c["token"] for c in recorder.calls] == ["env", "flag"]

    def test_string_list_flag_splits_commas(self) -> None:
        recorder = Recorder()
        runner.invoke(
            _app(recorder),
            ["drive", "create", "x", "--region", "r", "--tags", "a,b", "--tags", "c"],
        )
        assert recorder.calls[0]["tags"] == ["a", "b", "c"]

    def test_invocations_do_not_leak_flags(self) -> None:
        recorder = Recorder()
        app = _app(recorder)
        runner.invoke(app, ["drive", "create", "x", "--region", "nyc1", "--size", "7"])
        runner.invoke(app, ["drive", "create", "y", "--region", "nyc1"])
        assert [c["size"] for c in recorder.calls] == [7, 100]


# ---------------------------------------------------------------------------
# Global flags, aliases, arguments, errors
# ---------------------------------------------------------------------------


class TestGlobalFlags:
    def test_output_before_sub_command(self) -> None:
        recorder = Recorder()
        runner.invoke(_app(recorder), ["-o", "json", "drive", "create", "x", "--region", "r"])
        assert recorder.calls[0]["format"] == OutputFormat.JSON

    def test_output_after_sub_command(self) -> None:
        recorder = Recorder()
        runner.invoke(_app(recorder), ["drive", "create", "x", "--region", "r", "-o", "json"])
        assert recorder.calls[0]["format"] == OutputFormat.JSON

    def test_later_global_flag_wins(self) -> None:
        recorder = Recorder()
        runner.invoke(
            _app(recorder),
            ["-t", "early", "drive", "create", "x", "--region", "r", "-t", "late"],
        )
        assert recorder.calls[0]["token"] == "late"

    def test_output_from_file(self) -> None:
        recorder = Recorder()
        app = _app(recorder, file_values={"output": "json"})
        runner.invoke(app, ["drive", "create", "x", "--region", "r"])
        assert recorder.calls[0]["format"] == OutputFormat.JSON

    def test_bad_output_value(self) -> None:
        recorder = Recorder()
        result = runner.invoke(_app(recorder), ["-o", "yaml", "drive", "create", "x"])
        assert result.exit_code == 2
        assert "unknown output format 'yaml'" in result.output
        assert recorder.calls == []


class TestInvocation:
    def test_alias_runs_the_same_command(self) -> None:
        recorder = Recorder()
        result = runner.invoke(_app(recorder), ["drive", "c", "x", "--region", "r"])
        assert result.exit_code == 0, result.output
        assert recorder.calls[0]["args"] == ["x"]

    def test_required_marker_in_help(self) -> None:
        result = runner.invoke(_app(Recorder()), ["drive", "create", "--help"])
        assert "(required)" in result.output

    def test_handler_error_sets_exit_code(self) -> None:
        result = runner.invoke(_app(Recorder()), ["drive", "get"])
        assert result.exit_code == 4
        assert "Error: HTTP 404: drive not found" in result.output

    def test_no_arguments_shows_help(self) -> None:
        result = runner.invoke(_app(Recorder()), [])
        assert "drive" in result.output


# ---------------------------------------------------------------------------
# Generated command functions
# ---------------------------------------------------------------------------


class TestGeneratedFunction:
    def _node(self):
        cmd = CommandBuilder("list", lambda c: None, parent="drive")
        cmd.add_int_flag("size", 100, "Size")
        cmd.add_string_flag("region", "", "Region")
        return cmd.build()

    def test_context_is_first_parameter(self) -> None:
        fn = _build_command_function(self._node(), lambda *a: None)
        params = list(inspect.signature(fn).parameters)
        assert params[0] == "ctx"
        assert typing.get_type_hints(fn)["ctx"] is typer.Context

    def test_dispatch_receives_the_invocation_context(self) -> None:
        seen: dict[str, Any] = {}

        def _dispatch(ctx, args, values, global_values) -> None:
            seen["sources"] = {
                name: ctx.get_parameter_source(name).name for name in ("size", "region")
            }
            seen["values"] = values

        app = typer.Typer()
        app.command()(_build_command_function(self._node(), _dispatch))
        result = runner.invoke(app, ["--size", "5"])

        assert result.exit_code == 0, result.output
        assert seen["sources"] == {"size": "COMMANDLINE", "region": "DEFAULT"}
        assert seen["values"] == {"size": 5, "region": ""}


# ---------------------------------------------------------------------------
# The real application
# ---------------------------------------------------------------------------


class TestApplication:
    def test_version(self, make_app, cli_runner) -> None:
        result = cli_runner.invoke(make_app(), ["--version"])
        assert result.exit_code == 0
        assert f"oceanctl {__version__}" in result.output

    def test_missing_token_exits_with_auth_code(self, isolated_config, cli_runner) -> None:
        result = cli_runner.invoke(create_app(Config(environ={})), ["account", "get"])

        assert result.exit_code == 3
        assert "no access token configured" in result.output
        assert "DIGITALOCEAN_ACCESS_TOKEN" in result.output

    def test_token_from_flag_is_sent(self, make_app, cli_runner, fake_api) -> None:
        fake_api.add("GET", "v2/account", {"account": {"email": "a@example.com"}})
        result = cli_runner.invoke(make_app(), ["-t", "flag-token", "-o", "json", "account", "get"])

        assert result.exit_code == 0, result.output
        assert fake_api.requests[0].headers["Authorization"] == "Bearer flag-token"
        assert json.loads(result.stdout)["email"] == "a@example.com"

    @pytest.mark.parametrize("path", [["compute", "droplet"], ["compute", "d"]])
    def test_group_aliases(self, make_app, cli_runner, path) -> None:
        result = cli_runner.invoke(make_app(), [*path, "--help"])
        assert result.exit_code == 0
        assert "snapshots" in result.output
