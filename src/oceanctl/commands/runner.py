"""Build a Typer application from a :class:`CommandNode` tree and run handlers.

Every node becomes either a :class:`typer.Typer` sub-app (groups) or a
dynamically generated command function (leaves). Aliases are registered as
hidden duplicates under their alternative names.

**Invocation sequence**

1. The root callback collects the global flags given on the command line,
   resolves ``output``/``verbose``/``trace`` through the configuration and
   installs the :class:`~oceanctl.output.OutputManager`.
2. The leaf's dispatch function collects its own explicit flags and layers
   them, with the global ones, onto the shared :class:`Config`
   (:meth:`Config.overlay`). Global flags are also accepted after the
   sub-command (``oceanctl compute droplet list -o json``); given there,
   they override the ones given before it and the output is set up again.
3. :func:`execute` enforces the required flags, then calls the handler
   with a :class:`CmdConfig`.
4. An :class:`~oceanctl.exceptions.OceanctlError` escaping the handler is
   printed to stderr and turned into the matching exit code.

Only values whose parameter source is the command line are layered as
flags. Defaults, the environment and the config file are resolved by
:class:`Config` itself so that the precedence order holds for every key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, NoReturn, Optional

import typer

from oceanctl import __version__
from oceanctl.client import DEFAULT_API_URL, ApiClient
from oceanctl.commands.builder import (
    ARG_ACCESS_TOKEN,
    ARG_API_URL,
    ARG_FORMAT,
    ARG_NO_HEADER,
    ARG_OUTPUT,
    ARG_TRACE,
    ARG_VERBOSE,
    CommandNode,
    FlagSpec,
)
from oceanctl.commands.tree import check_required
from oceanctl.config import Config, ConfigValue, ValueKind, env_var_name, split_list
from oceanctl.display import Displayable, render
from oceanctl.exceptions import AuthError, OceanctlError
from oceanctl.output import (
    OutputFormat,
    OutputManager,
    configure_logging,
    get_output,
    set_output,
)
from oceanctl.services import Services

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Config], ApiClient]


def default_client_factory(config: Config) -> ApiClient:
    """Create the API client from the resolved global flags.

    Raises:
        AuthError: If no access token is configured anywhere.
    """
    token = config.get_string(ARG_ACCESS_TOKEN)
    if not token:
        raise AuthError(
            "no access token configured; run `oceanctl auth init` "
            f"or set {env_var_name(ARG_ACCESS_TOKEN)}"
        )
    return ApiClient(
        token,
        base_url=config.get_string(ARG_API_URL) or DEFAULT_API_URL,
        trace=config.get_bool(ARG_TRACE),
    )


# ---------------------------------------------------------------------------
# Execution context
# ---------------------------------------------------------------------------


@dataclass
class CmdConfig:
    """Everything a handler needs for one invocation.

    Flag accessors take the bare flag name and resolve the command's own
    namespace key, so handlers never spell out ``parent.command.flag``.

    Attributes:
        node: The command being run.
        config: The resolved configuration, including this invocation's
            explicit flags.
        args: Positional arguments.
        services: Lazily connected API services.
    """

    node: CommandNode
    config: Config
    args: list[str]
    services: Services

    @property
    def ns(self) -> str:
        return self.node.namespace

    def key(self, flag_name: str) -> str:
        return self.node.flag_key(flag_name)

    def is_set(self, flag_name: str) -> bool:
        return self.config.is_set(self.key(flag_name))

    def get_string(self, flag_name: str) -> str:
        return self.config.get_string(self.key(flag_name))

    def get_int(self, flag_name: str) -> int:
        return self.config.get_int(self.key(flag_name))

    def get_bool(self, flag_name: str) -> bool:
        return self.config.get_bool(self.key(flag_name))

    def get_string_list(self, flag_name: str) -> list[str]:
        return self.config.get_string_list(self.key(flag_name))

    def display(self, item: Displayable) -> None:
        """Render *item* honouring this command's ``--format`` and ``--no-header``."""
        columns: list[str] = []
        no_header = False
        if self.node.columns:
            columns = split_list(self.get_string(ARG_FORMAT))
            no_header = self.get_bool(ARG_NO_HEADER)
        render(item, columns=columns, no_header=no_header)


def execute(
    node: CommandNode,
    config: Config,
    args: list[str],
    client_factory: ClientFactory = default_client_factory,
) -> None:
    """Run *node*'s handler against an already overlaid *config*.

    Raises:
        MissingRequiredFlagError: Before the handler runs, when a required
            flag has no value.
    """
    assert node.handler is not None, f"{node.namespace} is a group"
    check_required(node, config)

    services = Services(lambda: client_factory(config))
    logger.debug("running %s with %d argument(s)", node.namespace, len(args))
    try:
        node.handler(CmdConfig(node=node, config=config, args=list(args), services=services))
    finally:
        services.close()


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def build_app(
    root: CommandNode,
    config: Config,
    client_factory: Optional[ClientFactory] = None,
) -> typer.Typer:
    """Build the Typer application for *root*.

    Args:
        root: Root of the command tree; its flags become global options,
            accepted before the sub-command and on every leaf command.
        config: The shared store, already bound with
            :func:`~oceanctl.commands.tree.bind_tree`.
        client_factory: Creates the API client on first use. Tests pass a
            factory built on :class:`httpx.MockTransport`.

    Returns:
        The application; call ``app()`` to run it.
    """
    factory = client_factory or default_client_factory
    app = typer.Typer(
        name=root.name,
        help=root.help,
        no_args_is_help=True,
        add_completion=False,
    )
    app.callback()(_build_root_callback(root, config))
    for child in root.children:
        _attach(app, child, root, config, factory)
    return app


def _attach(
    parent_app: typer.Typer,
    node: CommandNode,
    root: CommandNode,
    config: Config,
    factory: ClientFactory,
) -> None:
    names = (node.name, *node.aliases)
    if node.is_group:
        sub = typer.Typer(name=node.name, help=node.help, no_args_is_help=True)
        for child in node.children:
            _attach(sub, child, root, config, factory)
        for idx, name in enumerate(names):
            parent_app.add_typer(sub, name=name, help=node.help, hidden=idx > 0)
        return

    inherited = tuple(
        spec for spec in root.flags if all(spec.name != f.name for f in node.flags)
    )
    fn = _build_command_function(
        node, _make_dispatch(node, root, config, factory), inherited=inherited
    )
    for idx, name in enumerate(names):
        parent_app.command(name=name, help=node.help, hidden=idx > 0)(fn)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

Dispatch = Callable[[typer.Context, list[str], dict[str, Any], dict[str, Any]], None]


def _fail(exc: OceanctlError) -> NoReturn:
    get_output().error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def _flag_value(spec: FlagSpec, raw: Any) -> ConfigValue:
    if spec.kind == ValueKind.STRING_LIST:
        return ConfigValue.string_list(p for v in raw or () for p in split_list(v))
    return ConfigValue(spec.kind, raw)


def _explicit_flags(
    ctx: typer.Context, node: CommandNode, values: Mapping[str, Any]
) -> dict[str, ConfigValue]:
    """Return the flags of *node* that were typed on the command line, keyed by namespace key.

    Only names present in *values* are considered. The source enum is
    compared by name, since Typer may ship its own copy of click.
    """
    flags: dict[str, ConfigValue] = {}
    for spec in node.flags:
        if spec.name not in values:
            continue
        source = ctx.get_parameter_source(spec.param_name)
        if source is not None and source.name == "COMMANDLINE":
            flags[node.flag_key(spec.name)] = _flag_value(spec, values[spec.name])
    return flags


def _global_flags(ctx: typer.Context) -> dict[str, ConfigValue]:
    obj = ctx.find_root().obj or {}
    return dict(obj.get("global_flags", {}))


def _install_output(resolved: Config) -> None:
    """Create the OutputManager from the resolved global flags and install it."""
    output = OutputManager(
        format=OutputFormat.from_setting(resolved.get_string(ARG_OUTPUT)),
        verbose=resolved.get_bool(ARG_VERBOSE),
        trace=resolved.get_bool(ARG_TRACE),
    )
    set_output(output)
    configure_logging(output)


def _make_dispatch(
    node: CommandNode, root: CommandNode, config: Config, factory: ClientFactory
) -> Dispatch:
    def _dispatch(
        ctx: typer.Context,
        args: list[str],
        values: dict[str, Any],
        global_values: dict[str, Any],
    ) -> None:
        late_globals = _explicit_flags(ctx, root, global_values)
        flags = _global_flags(ctx)
        flags.update(late_globals)
        flags.update(_explicit_flags(ctx, node, values))
        try:
            resolved = config.overlay(flags)
            if late_globals:
                _install_output(resolved)
            execute(node, resolved, args, factory)
        except OceanctlError as exc:
            _fail(exc)

    return _dispatch


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oceanctl {__version__}")
        raise typer.Exit()


def _build_root_callback(root: CommandNode, config: Config) -> Callable[..., None]:
    def _configure(
        ctx: typer.Context,
        args: list[str],
        values: dict[str, Any],
        global_values: dict[str, Any],
    ) -> None:
        flags = _explicit_flags(ctx, root, values)
        ctx.ensure_object(dict)
        ctx.obj["global_flags"] = flags
        try:
            _install_output(config.overlay(flags))
        except OceanctlError as exc:
            _fail(exc)

    version_opt = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    )
    return _build_command_function(root, _configure, extra=[("version", bool, version_opt)])


# ---------------------------------------------------------------------------
# Dynamic command function builder
# ---------------------------------------------------------------------------


def _option_for(spec: FlagSpec) -> tuple[Any, Any]:
    """Return the annotation and :func:`typer.Option` descriptor for *spec*."""
    decls = [f"--{spec.name}"]
    if spec.shorthand:
        decls.append(f"-{spec.shorthand}")
    help_text = spec.help
    if spec.env_var:
        help_text = f"{help_text} (env: {spec.env_var})".strip()

    if spec.kind == ValueKind.BOOL:
        return bool, typer.Option(bool(spec.default), *decls, help=help_text, show_default=False)
    if spec.kind == ValueKind.INT:
        return int, typer.Option(spec.default or 0, *decls, help=help_text)
    if spec.kind == ValueKind.STRING_LIST:
        default = list(spec.default) or None
        return Optional[List[str]], typer.Option(
            default, *decls, help=help_text, show_default=bool(default)
        )
    return str, typer.Option(
        spec.default or "", *decls, help=help_text, show_default=bool(spec.default)
    )


def _build_command_function(
    node: CommandNode,
    dispatch: Dispatch,
    extra: Optional[list[tuple[str, Any, Any]]] = None,
    inherited: tuple[FlagSpec, ...] = (),
) -> Callable[..., None]:
    """Dynamically generate a Typer-compatible function for *node*.

    The function's signature takes the invocation context first, then one
    parameter per flag (plus a variadic ``args`` argument when the node
    takes positional arguments) so that Typer, which reads signatures
    through :mod:`inspect`, builds the right options. The source is compiled and executed into a namespace holding
    the annotation and default objects; when called, the function gathers
    the flag values by flag name and hands them to *dispatch*.

    Args:
        node: The command to generate a function for.
        dispatch: Called as ``dispatch(ctx, args, values, global_values)``.
        extra: Additional ``(name, annotation, default)`` parameters that
            are not flags of the node (``--version`` on the root).
        inherited: Global flags repeated on a leaf command; their values
            are passed separately as ``global_values``.
    """
    func_name = "_cmd_" + node.namespace.replace(".", "_").replace("-", "_")
    namespace: dict[str, Any] = {"_dispatch": dispatch, "_ann_ctx": typer.Context}
    sig_parts: list[str] = ["ctx: _ann_ctx"]

    for idx, (name, ann, default) in enumerate(extra or []):
        namespace[f"_ann_extra_{idx}"] = ann
        namespace[f"_default_extra_{idx}"] = default
        sig_parts.append(f"{name}: _ann_extra_{idx} = _default_extra_{idx}")

    if node.args:
        namespace["_ann_args"] = Optional[List[str]]
        namespace["_default_args"] = typer.Argument(
            None, metavar=node.args, show_default=False
        )
        sig_parts.append("args: _ann_args = _default_args")

    body_lines = ["    _values = {}", "    _globals = {}"]
    for prefix, target, specs in (("opt", "_values", node.flags), ("glob", "_globals", inherited)):
        for idx, spec in enumerate(specs):
            ann, default = _option_for(spec)
            namespace[f"_ann_{prefix}_{idx}"] = ann
            namespace[f"_default_{prefix}_{idx}"] = default
            sig_parts.append(f"{spec.param_name}: _ann_{prefix}_{idx} = _default_{prefix}_{idx}")
            body_lines.append(f"    {target}[{spec.name!r}] = {spec.param_name}")

    args_expr = "list(args or [])" if node.args else "[]"
    body_lines.append(f"    return _dispatch(ctx, {args_expr}, _values, _globals)")

    source = f"def {func_name}({', '.join(sig_parts)}):\n" + "\n".join(body_lines) + "\n"
    code = compile(source, f"<oceanctl:{node.namespace}>", "exec")
    exec(code, namespace)  # noqa: S102 -- controlled code generation
    fn = namespace[func_name]

    fn.__doc__ = node.help
    fn.__name__ = func_name
    fn.__qualname__ = func_name
    return fn
