"""Plugin discovery and loading.

Plugins react to allocation changes (DNS records, certificates, cache
purges). They come from two places:

- distributions exposing the ``domainpool.plugins`` entry-point group;
- ``*.py`` files in the pool's ``[plugins] local_dir``.

Names listed in ``[plugins] disabled`` are blocked in both. A plugin that
fails to import or instantiate is logged and skipped.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

import pluggy

from domainpool.plugins.hookspecs import DomainPoolHookSpec

if TYPE_CHECKING:
    from domainpool.config.models import PluginsConfig

PROJECT_NAME = "domainpool"
ENTRY_POINT_GROUP = "domainpool.plugins"
LOCAL_MODULE_PREFIX = "domainpool_local_plugin_"

# pluggy's HookimplMarker("domainpool") tags methods with this attribute.
_IMPL_ATTR = f"{PROJECT_NAME}_impl"

logger = logging.getLogger(__name__)


def _implements_hooks(cls: type) -> bool:
    return any(
        getattr(getattr(cls, name, None), _IMPL_ATTR, None)
        for name in dir(cls)
        if not name.startswith("_")
    )


def _load_local_module(path: Path) -> ModuleType | None:
    module_name = f"{LOCAL_MODULE_PREFIX}{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        logger.warning("Could not create module spec for %s", path)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        logger.warning("Failed to load local plugin %s", path, exc_info=True)
        sys.modules.pop(module_name, None)
        return None
    return module


def _plugin_classes(module: ModuleType) -> Iterator[type]:
    """Classes defined in *module* (not imported into it) that implement hooks."""
    for _name, obj in inspect.getmembers(module, inspect.isclass):
        if obj.__module__ == module.__name__ and _implements_hooks(obj):
            yield obj


class PluginManager:
    """Registry of lifecycle plugins around a pluggy manager."""

    def __init__(self, *, disabled: Iterable[str] = ()) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(DomainPoolHookSpec)
        self._disabled = frozenset(disabled)
        for name in self._disabled:
            self._pm.set_blocked(name)
        self._loaded = False

    @classmethod
    def from_config(cls, config: PluginsConfig, root: Path) -> PluginManager:
        """Build and load a manager for the pool rooted at *root*."""
        manager = cls(disabled=config.disabled)
        manager.discover_and_load(local_dir=root / config.local_dir if config.local_dir else None)
        return manager

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then local files. Returns loaded plugin names."""
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_entry_point_classes()
        if local_dir is not None and local_dir.is_dir():
            for path in sorted(local_dir.glob("*.py")):
                if not path.name.startswith("_"):
                    self._register_local(path)
        self._loaded = True
        names = self.list_plugin_names()
        logger.debug("plugins loaded: %s", ", ".join(names) or "none")
        return names

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        if resolved_name in self._disabled:
            logger.debug("Skipping disabled plugin: %s", resolved_name)
            return
        self._pm.register(plugin, name=resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._name_of(p) for p in self._pm.get_plugins()]

    def describe(self) -> list[dict[str, Any]]:
        """Each plugin with the lifecycle hooks it implements, sorted by name."""
        described = [
            {
                "name": self._name_of(plugin),
                "hooks": sorted(caller.name for caller in self._pm.get_hookcallers(plugin) or ()),
            }
            for plugin in self._pm.get_plugins()
        ]
        return sorted(described, key=lambda entry: entry["name"])

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _name_of(self, plugin: object) -> str:
        return self._pm.get_name(plugin) or plugin.__class__.__name__

    def _register_local(self, path: Path) -> None:
        module = _load_local_module(path)
        if module is None:
            return
        for cls in _plugin_classes(module):
            try:
                self.register_plugin(cls(), name=f"{module.__name__}.{cls.__name__}")
            except Exception:
                logger.warning(
                    "Failed to instantiate plugin class %s from %s",
                    cls.__name__,
                    path,
                    exc_info=True,
                )

    def _instantiate_entry_point_classes(self) -> None:
        """Swap entry points that name a class for an instance, so hooks bind ``self``."""
        for plugin in list(self._pm.get_plugins()):
            if not (inspect.isclass(plugin) and _implements_hooks(plugin)):
                continue
            name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                self._pm.register(plugin(), name=name)
            except Exception:
                logger.warning("Failed to instantiate entry-point plugin %s", name, exc_info=True)
