"""Built-in CLI sub-commands for acclink.

* :mod:`~acclink.commands.link` -- ``link``, ``unlink`` and ``status``,
  registered directly on the root app.
* :mod:`~acclink.commands.config` -- the ``config`` sub-command group.
"""
