"""oceanctl -- a command line client for the DigitalOcean API.

Commands and flags are described once as an immutable tree
(:mod:`oceanctl.commands.builder`); every flag resolves through a namespaced
configuration store with ``flag > env > file > default`` precedence
(:mod:`oceanctl.config`).
"""

__version__ = "0.1.0"
