"""The oceanctl command tree.

* :mod:`~oceanctl.commands.builder` -- :class:`CommandBuilder` and the frozen
  :class:`CommandNode` / :class:`FlagSpec` descriptors.
* :mod:`~oceanctl.commands.tree` -- binding flag defaults and environment
  variables, and the required-flag check.
* :mod:`~oceanctl.commands.runner` -- the Typer application generated from a
  tree, and :class:`CmdConfig`, the handler context.
* :mod:`~oceanctl.commands.root` -- assembly of the full tree from the
  resource modules (``account``, ``auth``, ``drive``, ``droplet``).
"""
