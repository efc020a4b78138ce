# File: typespec_serializers/templates.py
"""
TypeSpec Serializers - File Templates
=======================================
Text of the generated ``.tsp`` files (everything after the cache-key line).

    standard file     banner, imports, blank line, model block
    namespaced file   banner, imports (or ``export {}``), blank line,
                      ``namespace <Ns> { ... }`` wrapping the model
    index file        banner, one import per generated model

All string assembly uses ``List[str]`` + ``"\\n".join()``; the functions are
stateless.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from typespec_serializers.models import Interface

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.templates")

BANNER: str = (
    "//\n"
    "// DO NOT MODIFY: This file was automatically generated by TypeSpecSerializers."
)

#: Placeholder emitted in namespaced files that import nothing.
EMPTY_EXPORT: str = "export {}"


def _import_block(imports: Sequence[str]) -> str:
    return "".join(f"{line}\n" for line in imports)


def standard_model_content(interface: Interface, imports: Sequence[str]) -> str:
    lines: List[str] = [
        BANNER,
        _import_block(imports),
        interface.as_typespec(),
    ]
    return "\n".join(lines) + "\n"


def namespaced_model_content(interface: Interface, imports: Sequence[str], namespace: str) -> str:
    lines: List[str] = [
        BANNER,
        _import_block(imports) if imports else f"{EMPTY_EXPORT}\n",
        f"namespace {namespace} {{",
        f"  {interface.as_typespec(namespace)}",
        "}",
    ]
    return "\n".join(lines) + "\n"


def model_file_content(
    interface: Interface,
    imports: Sequence[str],
    namespace: Optional[str] = None,
) -> str:
    """Body of the model file of *interface*."""
    if namespace:
        return namespaced_model_content(interface, imports, namespace)
    return standard_model_content(interface, imports)


def index_file_content(filenames: Sequence[str]) -> str:
    """Body of ``index.tsp``: one import per model file, in the given order."""
    lines: List[str] = [BANNER]
    lines.extend(f'import "./{filename}.tsp";' for filename in filenames)
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BANNER",
    "EMPTY_EXPORT",
    "model_file_content",
    "standard_model_content",
    "namespaced_model_content",
    "index_file_content",
]
