# File: typespec_serializers/registry.py
"""
TypeSpec Serializers - Serializer Registry & Discovery
========================================================
Keeps track of every serializer class declared in the process and of the
source files they were loaded from.

Responsibilities:
    1. Load serializer source files as Python modules (and reload or unload
       them when the files change).
    2. Register classes as their bodies run (see ``dsl.BaseSerializer``).
    3. Resolve configured base names and enumerate their descendants.
    4. Build and cache one ``SerializerDefinition`` per class.

Classes are keyed by ``"<module>.<qualname>"``; reloading a module replaces
its entries, so stale classes from a previous version of a file are never
discovered.  Descendants are matched by key along the MRO rather than by
identity, which keeps subclasses in untouched files attached to a base class
whose module was reloaded.
"""

from __future__ import annotations

import importlib
import logging
import os
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from typespec_serializers.config import ConfigurationError
from typespec_serializers.models import SerializerDefinition
from typespec_serializers.utils import sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.registry")

_SYNTHETIC_PREFIX: str = "_typespec_serializers_"


def class_key(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


class SerializerRegistry:
    """
    Process-wide bookkeeping for serializer classes.

    Not thread-safe: loading and discovery happen on the generation thread.
    """

    def __init__(self) -> None:
        self._roots: Dict[str, type] = {}
        self._classes: Dict[str, type] = {}
        self._definitions: Dict[str, Tuple[type, SerializerDefinition]] = {}
        self._loaded_files: Dict[str, str] = {}

    # -----------------------------------------------------------------
    # Registration
    # -----------------------------------------------------------------

    def register_root(self, cls: type) -> None:
        """Register a built-in root class; survives ``clear()``."""
        self._roots[class_key(cls)] = cls

    def register(self, cls: type) -> None:
        key: str = class_key(cls)
        self._classes[key] = cls
        self._definitions.pop(key, None)
        logger.debug("Registered serializer %s.", key)

    def unregister_module(self, module_name: str) -> int:
        """Forget every class defined in *module_name*; returns how many."""
        stale: List[str] = [
            key for key, cls in self._classes.items() if cls.__module__ == module_name
        ]
        for key in stale:
            del self._classes[key]
            self._definitions.pop(key, None)
        return len(stale)

    def clear(self) -> None:
        """Forget all user classes and loaded files (roots are kept)."""
        for module_name in self._loaded_files.values():
            sys.modules.pop(module_name, None)
        self._classes.clear()
        self._definitions.clear()
        self._loaded_files.clear()

    def classes(self) -> List[type]:
        return list(self._classes.values())

    # -----------------------------------------------------------------
    # Resolution & discovery
    # -----------------------------------------------------------------

    def lookup(self, key: str) -> Optional[type]:
        """User class registered under the exact ``"<module>.<qualname>"`` key."""
        return self._classes.get(key)

    def resolve(self, name: str, module: Optional[str] = None) -> type:
        """
        Find a class by qualified name.

        Tries ``"<module>.<name>"`` first, then an exact full key, then any
        class (or root) whose qualified name is *name*.

        Raises:
            LookupError: If nothing matches.
        """
        candidates: Dict[str, type] = {**self._roots, **self._classes}

        if module is not None and f"{module}.{name}" in candidates:
            return candidates[f"{module}.{name}"]
        if name in candidates:
            return candidates[name]

        # User classes shadow built-in roots of the same name.
        matches: List[type] = [cls for cls in self._classes.values() if cls.__qualname__ == name]
        if not matches:
            matches = [cls for cls in self._roots.values() if cls.__qualname__ == name]
        if not matches:
            raise LookupError(f"No serializer named '{name}' has been loaded.")
        if len(matches) > 1:
            logger.warning(
                "Serializer name '%s' is ambiguous (%s); using the last one loaded.",
                name,
                ", ".join(class_key(c) for c in matches),
            )
        return matches[-1]

    def descendants(self, base: type) -> List[type]:
        """Every registered class that inherits from *base*, at any depth."""
        base_key: str = class_key(base)
        return [
            cls
            for cls in self._classes.values()
            if cls is not base and base_key in {class_key(k) for k in cls.__mro__[1:]}
        ]

    def discover(self, base_names: Sequence[str]) -> List[SerializerDefinition]:
        """
        Definitions of every descendant of the configured base serializers.

        Deduplicated and sorted by name.  Base classes themselves are included
        when one base descends from another; the caller filters them out.

        Raises:
            ConfigurationError: If a base name cannot be resolved.
        """
        found: Dict[str, type] = {}
        for base_name in base_names:
            try:
                base: type = self.resolve(base_name)
            except LookupError as exc:
                raise ConfigurationError(
                    f"Could not find the base serializer '{base_name}'. Please ensure "
                    "all your serializers extend BaseSerializer, or configure "
                    "`base_serializers`."
                ) from exc
            for cls in self.descendants(base):
                found[class_key(cls)] = cls

        definitions: List[SerializerDefinition] = [self.definition_for(cls) for cls in found.values()]
        return sorted(definitions, key=lambda d: (d.name, d.module))

    def definition_for(self, cls: type) -> SerializerDefinition:
        """Cached ``SerializerDefinition`` of *cls*, rebuilt if the class was replaced."""
        key: str = class_key(cls)
        cached: Optional[Tuple[type, SerializerDefinition]] = self._definitions.get(key)
        if cached is not None and cached[0] is cls:
            return cached[1]

        definition: SerializerDefinition = cls.tsp_definition()  # type: ignore[attr-defined]
        self._definitions[key] = (cls, definition)
        return definition

    def invalidate(self) -> None:
        """Drop memoized interfaces of every known definition."""
        for _cls, definition in self._definitions.values():
            definition.invalidate()

    # -----------------------------------------------------------------
    # Source files
    # -----------------------------------------------------------------

    def is_loaded(self, path: Path) -> bool:
        module_name: Optional[str] = self._loaded_files.get(str(Path(path).resolve()))
        return module_name is not None and module_name in sys.modules

    def module_name_for(self, path: Path) -> Optional[str]:
        """
        Dotted module name of *path* when it is importable from ``sys.path``.

        The deepest ``sys.path`` entry wins, so ``<root>/app/serializers/song.py``
        becomes ``app.serializers.song`` when ``<root>`` is on the path.
        """
        source: Path = Path(path).resolve().with_suffix("")
        best: Optional[Tuple[str, ...]] = None
        for entry in sys.path:
            try:
                base: Path = Path(entry or os.getcwd()).resolve()
                parts: Tuple[str, ...] = source.relative_to(base).parts
            except (OSError, ValueError):
                continue
            if not parts or not all(part.isidentifier() for part in parts):
                continue
            if best is None or len(parts) < len(best):
                best = parts
        if best and best[-1] == "__init__":
            best = best[:-1]
        return ".".join(best) if best else None

    def load_file(self, path: Path, *, reload: bool = False) -> ModuleType:
        """
        Execute a serializer source file, registering the classes it declares.

        Files importable from ``sys.path`` are imported under their real module
        name, so serializers can import each other.  Other files are executed
        under a private module name derived from their path.
        """
        source: Path = Path(path).resolve()
        known: Optional[str] = self._loaded_files.get(str(source))
        if not reload and known is not None and known in sys.modules:
            return sys.modules[known]

        module_name: Optional[str] = self.module_name_for(source)
        if module_name is not None:
            module: ModuleType = self._import_module(module_name, reload=reload)
        else:
            module_name = f"{_SYNTHETIC_PREFIX}{sha256_hex(str(source))[:12]}_{source.stem}"
            module = self._exec_file(module_name, source)

        self._loaded_files[str(source)] = module_name
        logger.debug("Loaded serializer file %s as %s.", source, module_name)
        return module

    def load_files(self, paths: Iterable[Path], *, reload: bool = False) -> List[ModuleType]:
        return [self.load_file(p, reload=reload) for p in sorted(paths, key=str)]

    def unload_file(self, path: Path) -> None:
        """Forget a (removed) source file and the classes it declared."""
        module_name: Optional[str] = self._loaded_files.pop(str(Path(path).resolve()), None)
        if module_name is None:
            return
        removed: int = self.unregister_module(module_name)
        sys.modules.pop(module_name, None)
        logger.debug("Unloaded %s (%d serializers).", module_name, removed)

    def _import_module(self, module_name: str, *, reload: bool) -> ModuleType:
        existing: Optional[ModuleType] = sys.modules.get(module_name)
        if existing is None:
            importlib.invalidate_caches()
            return importlib.import_module(module_name)
        if not reload:
            return existing
        self.unregister_module(module_name)
        return importlib.reload(existing)

    def _exec_file(self, module_name: str, source: Path) -> ModuleType:
        self.unregister_module(module_name)
        module: ModuleType = ModuleType(module_name)
        module.__file__ = str(source)
        sys.modules[module_name] = module
        try:
            code: Any = compile(source.read_text(encoding="utf-8"), str(source), "exec")
            exec(code, module.__dict__)
        except BaseException:
            sys.modules.pop(module_name, None)
            self.unregister_module(module_name)
            raise
        return module


#: Default registry used by ``BaseSerializer`` subclasses.
registry: SerializerRegistry = SerializerRegistry()

# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SerializerRegistry",
    "class_key",
    "registry",
]
