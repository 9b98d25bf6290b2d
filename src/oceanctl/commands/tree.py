"""Configuration binding and required-flag enforcement for a command tree."""

from __future__ import annotations

import logging

from oceanctl.commands.builder import CommandNode
from oceanctl.config import Config
from oceanctl.exceptions import MissingRequiredFlagError

logger = logging.getLogger(__name__)


def bind_tree(config: Config, root: CommandNode) -> Config:
    """Declare the default of every flag in *root* and bind its environment variable.

    Called once at startup, before any command runs. Returns *config* for
    chaining.
    """
    for node in root.walk():
        for spec in node.flags:
            key = node.flag_key(spec.name)
            config.declare(key, spec.kind, spec.default)
            if spec.env_var:
                config.bind_env(key, spec.env_var)
    logger.debug("bound %d configuration keys", sum(len(n.flags) for n in root.walk()))
    return config


def missing_required(node: CommandNode, config: Config) -> list[str]:
    """Return the names of *node*'s required flags that resolve to nothing, in declaration order."""
    return [
        spec.name
        for spec in node.flags
        if node.flag_key(spec.name) in node.required
        and not config.is_set(node.flag_key(spec.name))
    ]


def check_required(node: CommandNode, config: Config) -> None:
    """Refuse to run *node* unless every required flag has a non-empty value.

    A value counts no matter where it came from: an explicit flag, its
    environment variable, the config file or a non-empty default.

    Raises:
        MissingRequiredFlagError: Naming every missing flag.
    """
    missing = missing_required(node, config)
    if missing:
        raise MissingRequiredFlagError(node.namespace, missing)
