"""Extension layer — plugin system via pluggy.

Discovery: ``bookkeeper.plugins`` entry points plus single-file plugins
in ``<library>/.bookkeeper/plugins/``.
INVARIANT: Plugin failures are warnings, never errors.
"""

import pluggy

from bookkeeper.plugins.manager import PluginManager

hookimpl = pluggy.HookimplMarker("bookkeeper")

__all__ = ["PluginManager", "hookimpl"]
