# File: typespec_serializers/imports.py
"""
TypeSpec Serializers - Import Resolution
==========================================
Computes the ``import "<path>.tsp";`` lines a generated model needs.

Two kinds of imports exist:

* custom types: capitalized, non-global identifiers used in explicit type
  expressions, imported from the custom TypeSpec directory;
* model references: other generated models used by associations.

Paths are relative to the directory of the importing file.
"""

from __future__ import annotations

import logging
import posixpath
from typing import List, Optional, Set

from typespec_serializers.config import GeneratorConfig
from typespec_serializers.models import Interface, ModelReference
from typespec_serializers.utils import leading_type_name, relative_import_path

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.imports")


def is_global_type(type_name: str, config: GeneratorConfig) -> bool:
    """Lowercase names are built-in scalars; configured globals need no import."""
    return type_name[0] == type_name[0].lower() or type_name in config.global_types


def custom_type_names(interface: Interface, config: GeneratorConfig) -> List[str]:
    """Distinct custom type identifiers used by *interface*, in property order."""
    names: List[str] = []
    for prop in interface.properties:
        if prop.type is None or isinstance(prop.type, ModelReference):
            continue
        name: Optional[str] = leading_type_name(prop.type)
        if name and not is_global_type(name, config) and name not in names:
            names.append(name)
    return names


def used_imports(interface: Interface, config: GeneratorConfig) -> List[str]:
    """
    Import lines of *interface*, custom types first, each path once.

    A model never imports its own file.
    """
    paths: List[str] = []
    custom_dir: str = config.relative_custom_typespec_dir

    for name in custom_type_names(interface, config):
        paths.append(relative_import_path(posixpath.join(custom_dir, name), interface.filename))

    seen_refs: Set[str] = set()
    for prop in interface.properties:
        ref = prop.type
        if not isinstance(ref, ModelReference) or ref.filename in seen_refs:
            continue
        seen_refs.add(ref.filename)
        if ref.filename == interface.filename:
            continue
        paths.append(relative_import_path(ref.filename, interface.filename))

    unique: List[str] = list(dict.fromkeys(paths))
    logger.debug("%s imports %d path(s).", interface.name, len(unique))
    return [f'import "{path}.tsp";' for path in unique]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "is_global_type",
    "custom_type_names",
    "used_imports",
]
