"""Immutable command descriptors and the builder that assembles them.

A command tree is described once at startup with :class:`CommandBuilder` and
frozen into :class:`CommandNode` objects. Nodes know their parent only by
name, which is all that is needed to derive the namespace key of each flag
(:func:`oceanctl.config.namespace_key`).

Example::

    drive = CommandBuilder("drive", help="drive commands")
    create = drive.command("create", run_drive_create, args="NAME",
                           help="create a drive", aliases=("c",))
    create.add_int_flag("size", 100, "Size of the drive (GiB)", required=True)
    create.add_string_flag("region", "", "Drive region", required=True)
    node = drive.build()

    node.find("create").flag_key("size")   # "drive.create.size"
    node.find("create").required            # {"drive.create.size", "drive.create.region"}

Marking a flag required appends a visible ``(required)`` marker to its help
text and records its key in the node's required set. The set is metadata:
:func:`oceanctl.commands.tree.check_required` enforces it once per
invocation, before the handler runs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Sequence

from oceanctl.config import ValueKind, command_namespace, env_var_name, namespace_key

if TYPE_CHECKING:
    from oceanctl.commands.runner import CmdConfig
    from oceanctl.display import Displayable

# Global flags, keyed by bare name.
ARG_ACCESS_TOKEN = "access-token"
ARG_API_URL = "api-url"
ARG_OUTPUT = "output"
ARG_VERBOSE = "verbose"
ARG_TRACE = "trace"

# Display flags added by CommandBuilder.displays().
ARG_FORMAT = "format"
ARG_NO_HEADER = "no-header"

REQUIRED_MARKER = "(required)"

Handler = Callable[["CmdConfig"], None]


@dataclass(frozen=True)
class FlagSpec:
    """Definition of one ``--flag``.

    Attributes:
        name: Flag name without dashes (``region``).
        kind: Kind of value the flag holds.
        default: Compiled-in default.
        help: Help text shown by ``--help``.
        shorthand: Optional one-letter alias (``t`` for ``-t``).
        env_var: Environment variable bound to the flag's key, if any.
    """

    name: str
    kind: ValueKind
    default: Any = None
    help: str = ""
    shorthand: Optional[str] = None
    env_var: Optional[str] = None

    @property
    def param_name(self) -> str:
        """Python identifier used for the flag in generated signatures."""
        return self.name.replace("-", "_")


@dataclass(frozen=True)
class CommandNode:
    """A frozen command of the tree.

    Attributes:
        name: Command name as typed on the command line.
        parent_name: Name of the parent command; ``None`` for the root and for
            root-level commands.
        help: One-line description.
        args: Usage text of the positional arguments (``NAME [NAME ...]``);
            empty when the command takes none.
        aliases: Alternative names.
        flags: Flag definitions, in declaration order.
        handler: Function run on invocation; ``None`` for pure groups.
        children: Sub-commands.
        required: Namespace keys that must resolve to a non-empty value.
        columns: Columns offered by ``--format`` (empty when the command
            displays nothing).
        is_root: Whether this node is the root command. Root flags are global
            and keyed by their bare name.
    """

    name: str
    parent_name: Optional[str] = None
    help: str = ""
    args: str = ""
    aliases: tuple[str, ...] = ()
    flags: tuple[FlagSpec, ...] = ()
    handler: Optional[Handler] = None
    children: tuple[CommandNode, ...] = ()
    required: frozenset[str] = frozenset()
    columns: tuple[str, ...] = ()
    is_root: bool = False

    @property
    def namespace(self) -> str:
        """The ``parent.command`` prefix used in keys and error messages."""
        return command_namespace(self.parent_name, self.name)

    @property
    def is_group(self) -> bool:
        return self.handler is None

    def flag_key(self, flag_name: str) -> str:
        """Return the configuration key of *flag_name* on this command."""
        if self.is_root:
            return flag_name
        return namespace_key(self.parent_name, self.name, flag_name)

    def find(self, *path: str) -> CommandNode:
        """Return the descendant reached by following *path* (names or aliases)."""
        node = self
        for part in path:
            for child in node.children:
                if part == child.name or part in child.aliases:
                    node = child
                    break
            else:
                raise KeyError(f"{node.namespace} has no sub-command {part!r}")
        return node

    def walk(self) -> Iterator[CommandNode]:
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


class CommandBuilder:
    """Mutable builder producing a :class:`CommandNode`.

    Args:
        name: Command name.
        handler: Function run on invocation; omit for groups.
        help: One-line description.
        args: Usage text of the positional arguments.
        aliases: Alternative names.
        parent: Name of the parent command, set automatically by
            :meth:`command`.
        root: Build the root command (flags become global).
    """

    def __init__(
        self,
        name: str,
        handler: Optional[Handler] = None,
        help: str = "",
        args: str = "",
        aliases: Sequence[str] = (),
        parent: Optional[str] = None,
        root: bool = False,
    ) -> None:
        self.name = name
        self._handler = handler
        self._help = help
        self._args = args
        self._aliases = tuple(aliases)
        self._parent = parent
        self._root = root
        self._flags: list[FlagSpec] = []
        self._required: list[str] = []
        self._env_flags: list[str] = []
        self._columns: tuple[str, ...] = ()
        self._children: list[CommandBuilder] = []

    # ------------------------------------------------------------------ #
    # Tree composition
    # ------------------------------------------------------------------ #

    def command(
        self,
        name: str,
        handler: Optional[Handler] = None,
        help: str = "",
        args: str = "",
        aliases: Sequence[str] = (),
    ) -> CommandBuilder:
        """Create a child command and return its builder."""
        child = CommandBuilder(
            name,
            handler=handler,
            help=help,
            args=args,
            aliases=aliases,
            parent=None if self._root else self.name,
        )
        self._children.append(child)
        return child

    def add(self, child: CommandBuilder) -> CommandBuilder:
        """Attach an independently created builder as a child of this one."""
        child._parent = None if self._root else self.name
        self._children.append(child)
        return self

    # ------------------------------------------------------------------ #
    # Flags
    # ------------------------------------------------------------------ #

    def add_flag(
        self,
        name: str,
        kind: ValueKind,
        default: Any,
        help: str,
        shorthand: Optional[str] = None,
        required: bool = False,
        env: bool = False,
    ) -> CommandBuilder:
        """Declare a flag of any kind.

        Args:
            env: Bind the flag's key to its derived environment variable
                (see :func:`oceanctl.config.env_var_name`).
        """
        if any(f.name == name for f in self._flags):
            raise ValueError(f"flag --{name} declared twice on {self.name}")
        self._flags.append(
            FlagSpec(name=name, kind=kind, default=default, help=help, shorthand=shorthand)
        )
        if env:
            self._env_flags.append(name)
        if required:
            self.mark_required(name)
        return self

    def add_string_flag(
        self, name: str, default: str = "", help: str = "", **kwargs: Any
    ) -> CommandBuilder:
        return self.add_flag(name, ValueKind.STRING, default, help, **kwargs)

    def add_int_flag(
        self, name: str, default: int = 0, help: str = "", **kwargs: Any
    ) -> CommandBuilder:
        return self.add_flag(name, ValueKind.INT, default, help, **kwargs)

    def add_bool_flag(
        self, name: str, default: bool = False, help: str = "", **kwargs: Any
    ) -> CommandBuilder:
        return self.add_flag(name, ValueKind.BOOL, default, help, **kwargs)

    def add_string_list_flag(
        self, name: str, default: Optional[Sequence[str]] = None, help: str = "", **kwargs: Any
    ) -> CommandBuilder:
        return self.add_flag(name, ValueKind.STRING_LIST, list(default or []), help, **kwargs)

    def mark_required(self, flag_name: str) -> CommandBuilder:
        """Require *flag_name* and append the ``(required)`` marker to its help."""
        for idx, spec in enumerate(self._flags):
            if spec.name == flag_name:
                break
        else:
            raise KeyError(f"{self.name} has no flag --{flag_name}")

        if flag_name not in self._required:
            self._required.append(flag_name)
            help_text = f"{spec.help} {REQUIRED_MARKER}".strip()
            self._flags[idx] = replace(spec, help=help_text)
        return self

    def displays(self, displayable: type[Displayable]) -> CommandBuilder:
        """Add ``--format`` and ``--no-header`` for the columns of *displayable*."""
        self._columns = tuple(displayable.columns)
        format_help = (
            "Columns for output in a comma separated list. Possible values: "
            + ",".join(self._columns)
        )
        self.add_string_flag(ARG_FORMAT, "", format_help)
        self.add_bool_flag(ARG_NO_HEADER, False, "hide headers")
        return self

    # ------------------------------------------------------------------ #
    # Build
    # ------------------------------------------------------------------ #

    def build(self) -> CommandNode:
        """Freeze this builder and all of its children."""
        return CommandNode(
            name=self.name,
            parent_name=self._parent,
            help=self._help,
            args=self._args,
            aliases=self._aliases,
            flags=tuple(
                replace(spec, env_var=env_var_name(self._key(spec.name)))
                if spec.name in self._env_flags
                else spec
                for spec in self._flags
            ),
            handler=self._handler,
            children=tuple(child.build() for child in self._children),
            required=frozenset(self._key(name) for name in self._required),
            columns=self._columns,
            is_root=self._root,
        )

    def _key(self, flag_name: str) -> str:
        if self._root:
            return flag_name
        return namespace_key(self._parent, self.name, flag_name)
