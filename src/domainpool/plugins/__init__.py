"""Extension layer — lifecycle events delivered to pluggy plugins.

Committed allocation changes become typed events (``events``), are
written to the event WAL and handed to plugins (``event_bus``) discovered
from entry points or the pool's local plugin directory (``manager``).
INVARIANT: Plugin failures are warnings, never errors.
"""

from domainpool.plugins.event_bus import EventBus
from domainpool.plugins.events import LifecycleEvent, build_event
from domainpool.plugins.manager import PluginManager

__all__ = ["EventBus", "LifecycleEvent", "PluginManager", "build_event"]
