"""Namespaced configuration with XDG paths, atomic writes, and precedence resolution.

This module is the configuration core of oceanctl:

* **Namespace keys** -- every flag of every command owns one slot named
  ``{parent}.{command}.{flag}`` (see :func:`namespace_key`). Flags of the
  root command are global and use their bare name (``access-token``).
* **Typed values** -- :class:`ConfigValue` tags each value with a
  :class:`ValueKind`; the typed accessors on :class:`Config` refuse to read a
  key through the wrong kind.
* **Precedence resolution** -- :class:`Config` stores one layer per
  :class:`Source` and resolves ``flag > env > file > default``.
* **Config file** -- a YAML mapping at ``<config dir>/config.yaml`` whose
  keys are namespace keys. See :func:`load_config_file` and
  :func:`save_config_value`.
* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oceanctl/`` on macOS and Windows.

All writes are performed once, while the command tree is assembled. At
execution time the runner layers explicit command-line values on with
:meth:`Config.overlay`, which returns a new object and leaves the shared
store untouched.
"""

from __future__ import annotations

import enum
import os
import platform
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

from oceanctl.exceptions import ConfigError, MissingValueError, TypeMismatchError

_APP_NAME = "oceanctl"
_CONFIG_FILENAME = "config.yaml"

NS_ROOT = "oceanctl"
"""Namespace token used as the parent of root-level commands."""

ENV_PREFIX = "DIGITALOCEAN"
"""Prefix of every environment variable bound to a configuration key."""

CONFIG_PATH_ENV = "OCEANCTL_CONFIG"
"""Environment variable overriding the configuration file location."""


# --- Namespace keys ---


def namespace_key(parent: Optional[str], command: str, flag: str) -> str:
    """Return the configuration key of *flag* on *command*.

    Args:
        parent: Name of the command's parent, or ``None`` for root-level
            commands (which use :data:`NS_ROOT`).
        command: The command's own name.
        flag: The flag name without leading dashes.

    Returns:
        A key of the form ``parent.command.flag``.
    """
    return f"{command_namespace(parent, command)}.{flag}"


def command_namespace(parent: Optional[str], command: str) -> str:
    """Return the ``parent.command`` prefix shared by all keys of a command."""
    return f"{parent or NS_ROOT}.{command}"


def env_var_name(key: str) -> str:
    """Derive the environment variable bound to *key*.

    ``access-token`` becomes ``DIGITALOCEAN_ACCESS_TOKEN``.
    """
    return f"{ENV_PREFIX}_{key.replace('-', '_').replace('.', '_').upper()}"


# --- Typed values ---


class ValueKind(str, enum.Enum):
    """Kinds of values a flag can hold."""

    STRING = "string"
    INT = "int"
    BOOL = "bool"
    STRING_LIST = "string_list"


class Source(str, enum.Enum):
    """Configuration sources, listed from highest to lowest precedence."""

    FLAG = "flag"
    ENV = "env"
    FILE = "file"
    DEFAULT = "default"


PRECEDENCE: tuple[Source, ...] = (Source.FLAG, Source.ENV, Source.FILE, Source.DEFAULT)

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class ConfigValue:
    """A value tagged with its :class:`ValueKind`.

    Use :meth:`of` to build a value from an arbitrary Python object (the
    kind is inferred) and :meth:`coerce` to convert it to a declared kind.
    """

    kind: ValueKind
    value: Any

    @classmethod
    def string(cls, value: str) -> ConfigValue:
        return cls(ValueKind.STRING, value)

    @classmethod
    def int_(cls, value: int) -> ConfigValue:
        return cls(ValueKind.INT, value)

    @classmethod
    def bool_(cls, value: bool) -> ConfigValue:
        return cls(ValueKind.BOOL, value)

    @classmethod
    def string_list(cls, value: Iterable[str]) -> ConfigValue:
        return cls(ValueKind.STRING_LIST, [str(v) for v in value])

    @classmethod
    def of(cls, value: Any) -> ConfigValue:
        """Wrap a YAML scalar or list, inferring its kind.

        ``bool`` is checked before ``int`` because it is a subclass of it.
        """
        if isinstance(value, bool):
            return cls.bool_(value)
        if isinstance(value, int):
            return cls.int_(value)
        if isinstance(value, (list, tuple)):
            return cls.string_list(value)
        return cls.string("" if value is None else str(value))

    @property
    def is_empty(self) -> bool:
        """``None``, ``""`` and ``[]`` are empty; ``False`` and ``0`` are not."""
        return self.value is None or self.value == "" or self.value == []

    def coerce(self, kind: ValueKind, key: str = "") -> ConfigValue:
        """Convert this value to *kind*.

        Raises:
            ConfigError: If the value cannot be represented as *kind*.
        """
        if kind == self.kind:
            return self
        raw = self.value
        try:
            if kind == ValueKind.STRING:
                if isinstance(raw, list):
                    return ConfigValue.string(",".join(raw))
                return ConfigValue.string(str(raw))
            if kind == ValueKind.INT:
                if isinstance(raw, (bool, list)):
                    raise ValueError(raw)
                return ConfigValue.int_(int(str(raw).strip()))
            if kind == ValueKind.BOOL:
                text = str(raw).strip().lower()
                if isinstance(raw, int) and not isinstance(raw, bool):
                    return ConfigValue.bool_(raw != 0)
                if text in _TRUE_STRINGS:
                    return ConfigValue.bool_(True)
                if text in _FALSE_STRINGS:
                    return ConfigValue.bool_(False)
                raise ValueError(raw)
            # STRING_LIST
            if isinstance(raw, str):
                return ConfigValue.string_list(split_list(raw))
            return ConfigValue.string_list([str(raw)])
        except ValueError:
            raise ConfigError(
                f"Invalid value for {key or 'setting'}: {raw!r} is not a valid {kind.value}"
            ) from None


def split_list(raw: str) -> list[str]:
    """Split a comma separated list, tolerating ``[a,b]`` brackets and blanks."""
    raw = raw.strip().removeprefix("[").removesuffix("]")
    return [part.strip() for part in raw.split(",") if part.strip()]


# --- Resolver ---


class Config:
    """Layered key/value store resolving ``flag > env > file > default``.

    A single instance is created at startup, filled while the command tree is
    assembled (:func:`oceanctl.commands.tree.bind_tree`) and then only read.
    Per-invocation flag values are applied with :meth:`overlay`.

    Args:
        file_values: Flattened configuration file contents (see
            :func:`load_config_file`).
        environ: Environment used by :meth:`bind_env`. Defaults to
            ``os.environ``.
    """

    def __init__(
        self,
        file_values: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._environ: Mapping[str, str] = os.environ if environ is None else environ
        self._layers: dict[Source, dict[str, ConfigValue]] = {s: {} for s in PRECEDENCE}
        self._kinds: dict[str, ValueKind] = {}
        for key, raw in (file_values or {}).items():
            # A key written with no value falls through to the default.
            if raw is None:
                continue
            self._layers[Source.FILE][key] = ConfigValue.of(raw)

    # ------------------------------------------------------------------ #
    # Binding
    # ------------------------------------------------------------------ #

    def bind(self, key: str, source: Source, value: ConfigValue) -> None:
        """Store *value* for *key* in the *source* layer.

        Binding a default also declares the key's kind; values from every
        other layer are coerced to it when read.
        """
        if source == Source.DEFAULT:
            self._kinds[key] = value.kind
        self._layers[source][key] = value

    def declare(self, key: str, kind: ValueKind, default: Any) -> None:
        """Bind the compiled-in *default* for *key* and declare its kind."""
        if default is None:
            default = [] if kind == ValueKind.STRING_LIST else None
        self.bind(key, Source.DEFAULT, ConfigValue(kind, default))

    def bind_env(self, key: str, var: Optional[str] = None) -> None:
        """Bind the environment variable *var* (derived from *key* by default) to *key*.

        The variable is read once, now. Unset and empty variables bind
        nothing.
        """
        var = var or env_var_name(key)
        raw = self._environ.get(var)
        if raw:
            self.bind(key, Source.ENV, ConfigValue.string(raw))

    def overlay(self, flags: Mapping[str, ConfigValue]) -> Config:
        """Return a copy with *flags* bound in the :attr:`Source.FLAG` layer.

        The receiver is not modified, so concurrent readers of the shared
        store never observe another invocation's flags.
        """
        clone = Config.__new__(Config)
        clone._environ = self._environ
        clone._kinds = dict(self._kinds)
        clone._layers = {source: dict(layer) for source, layer in self._layers.items()}
        clone._layers[Source.FLAG].update(flags)
        return clone

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    def source_of(self, key: str) -> Optional[Source]:
        """Return the layer that currently supplies *key*."""
        for source in PRECEDENCE:
            if key in self._layers[source]:
                return source
        return None

    def get(self, key: str) -> Optional[ConfigValue]:
        """Resolve *key* through the precedence chain.

        Returns:
            The value from the highest-precedence layer holding *key*,
            coerced to the declared kind, or ``None``.

        Raises:
            ConfigError: If the winning value cannot be coerced.
        """
        source = self.source_of(key)
        if source is None:
            return None
        value = self._layers[source][key]
        kind = self._kinds.get(key)
        if kind is not None:
            value = value.coerce(kind, key)
        return value

    def get_required(self, key: str) -> ConfigValue:
        """Resolve *key*, raising :class:`MissingValueError` when it is empty or unset."""
        value = self.get(key)
        if value is None or value.is_empty:
            raise MissingValueError(key)
        return value

    def is_set(self, key: str) -> bool:
        """Return ``True`` when *key* resolves to a non-empty value."""
        value = self.get(key)
        return value is not None and not value.is_empty

    def get_string(self, key: str) -> str:
        value = self._typed(key, ValueKind.STRING)
        return "" if value is None else value

    def get_int(self, key: str) -> int:
        value = self._typed(key, ValueKind.INT)
        return 0 if value is None else value

    def get_bool(self, key: str) -> bool:
        return bool(self._typed(key, ValueKind.BOOL))

    def get_string_list(self, key: str) -> list[str]:
        value = self._typed(key, ValueKind.STRING_LIST)
        return [] if value is None else list(value)

    def _typed(self, key: str, expected: ValueKind) -> Any:
        """Resolve *key* and check the result is of kind *expected*."""
        declared = self._kinds.get(key)
        if declared is not None and declared != expected:
            raise TypeMismatchError(key, expected.value, declared.value)
        value = self.get(key)
        if value is None:
            return None
        if declared is None:
            value = value.coerce(expected, key)
        return value.value


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Return ``$env_var`` if set, else ``~`` joined with *default_segments*."""
    value = os.environ.get(env_var)
    if value:
        return Path(value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/oceanctl/`` (default ``~/.config/oceanctl/``).
    On macOS/Windows: ``~/.oceanctl/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oceanctl/`` (default ``~/.local/share/oceanctl/``).
    On macOS/Windows: ``~/.oceanctl/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the original file is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def config_file_path() -> Path:
    """Return the config file location (``$OCEANCTL_CONFIG`` or ``<config dir>/config.yaml``)."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


def _read_document(path: Path) -> dict[str, Any]:
    """Parse the YAML mapping stored at *path* (empty when the file is missing)."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid config file at {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file at {path}: expected a mapping")
    return data


def flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys.

    ``{"drive": {"create": {"size": 50}}}`` becomes ``{"drive.create.size": 50}``.
    """
    flat: dict[str, Any] = {}
    for key, value in data.items():
        full = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten(value, full))
        else:
            flat[full] = value
    return flat


def load_config_file(path: Optional[Path] = None) -> dict[str, Any]:
    """Load and flatten the YAML configuration file.

    Args:
        path: File to read. Defaults to :func:`config_file_path`.

    Returns:
        A mapping of namespace keys to raw YAML values; empty when the
        file does not exist.

    Raises:
        ConfigError: If the file is not valid YAML or is not a mapping.
    """
    return flatten(_read_document(path or config_file_path()))


def save_config_value(key: str, value: Any, path: Optional[Path] = None) -> Path:
    """Persist a single top-level *key* in the configuration file atomically.

    Other keys already in the file are preserved.

    Returns:
        The path that was written.
    """
    path = path or config_file_path()
    data = _read_document(path)
    data[key] = value
    _atomic_write(path, yaml.safe_dump(data, default_flow_style=False, sort_keys=True))
    return path


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Create the process-wide :class:`Config` from the config file.

    Defaults and environment bindings are added afterwards, while the
    command tree is assembled.
    """
    return Config(load_config_file(path), environ)
