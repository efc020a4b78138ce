# File: typespec_serializers/utils.py
"""
TypeSpec Serializers - Utility Functions & Helpers
====================================================
String transformation, path arithmetic, hashing and file-system helpers used
throughout the generation pipeline.

- Naming helpers are decorated with ``@lru_cache(maxsize=None)`` because the
  same attribute keys and serializer names are converted on every pass.
- Relative paths are computed with ``posixpath`` so generated import lines
  never contain backslashes, whatever the host platform.
"""

from __future__ import annotations

import functools
import hashlib
import importlib
import logging
import posixpath
import re
import shutil
import time
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Tuple, Union

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_LEADING_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual words from any casing style.

    Returns a tuple (hashable for LRU cache) of lowercase word strings.
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

    Examples:
        >>> to_camel_case("created_at")
        'createdAt'
        >>> to_camel_case("HTTPResponse")
        'httpResponse'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    if not words:
        return ""
    return words[0] + "".join(w.capitalize() for w in words[1:])


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    Naive English singularisation, good enough for record names.
    """
    if not name:
        return ""

    lower: str = name.lower()

    reverse_irregulars: Dict[str, str] = {
        "people": "person",
        "children": "child",
        "men": "man",
        "women": "woman",
        "data": "datum",
        "indices": "index",
        "statuses": "status",
        "addresses": "address",
    }

    if lower in reverse_irregulars:
        singular: str = reverse_irregulars[lower]
        if name[0].isupper():
            return singular[0].upper() + singular[1:]
        return singular

    if lower.endswith("ies") and len(name) > 3:
        return name[:-3] + "y"
    if lower.endswith("ves"):
        return name[:-3] + "f"
    if lower.endswith(("ses", "xes", "zes", "ches", "shes")):
        return name[:-2]
    if lower.endswith("s") and not lower.endswith(("ss", "us", "is")):
        return name[:-1]

    return name


@functools.lru_cache(maxsize=None)
def classify(name: str) -> str:
    """
    Turn a snake-cased, possibly plural alias into a record class name.

    Examples:
        >>> classify("song")
        'Song'
        >>> classify("composer_songs")
        'ComposerSong'
    """
    words: Tuple[str, ...] = _extract_words(name)
    if not words:
        return ""
    *head, last = words
    return "".join(w.capitalize() for w in head) + to_singular(last).capitalize()


def lower_camel_key(key: str) -> str:
    """Default key transform: lower camel case without a trailing ``?``."""
    camel: str = to_camel_case(key)
    return camel[:-1] if camel.endswith("?") else camel


def strip_serializer_suffix(name: str) -> str:
    """
    Remove the ``Serializer`` suffix from every dotted part of a name.

    Examples:
        >>> strip_serializer_suffix("ComposerWithSongsSerializer.SongSerializer")
        'ComposerWithSongs.Song'
    """
    parts: List[str] = [
        part[: -len("Serializer")] if part.endswith("Serializer") else part
        for part in name.split(".")
    ]
    return ".".join(parts)


def leading_type_name(type_expression: str) -> Optional[str]:
    """
    Return the leading identifier of a type expression, or ``None``.

    ``"Record<string, unknown>"`` yields ``"Record"``, ``"AnyModel.id::type"``
    yields ``"AnyModel"`` and a literal union such as ``'"a" | "b"'`` yields
    ``None``.
    """
    head: str = type_expression.split(".", 1)[0]
    match: Optional[re.Match[str]] = _LEADING_IDENTIFIER_RE.match(head)
    return match.group(1) if match else None


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def relative_import_path(
    target: Union[str, PurePosixPath],
    importer: Union[str, PurePosixPath],
) -> str:
    """
    Path of *target* as seen from the directory of *importer*.

    Both are relative to the output root and carry no extension.  The result
    always starts with ``.`` so TypeSpec treats it as a relative import.

    Examples:
        >>> relative_import_path("Composer", "Song")
        './Composer'
        >>> relative_import_path("Song", "Nested/Album")
        '../Song'
    """
    importer_dir: str = posixpath.dirname(str(importer)) or "."
    path: str = posixpath.relpath(str(target), importer_dir)
    return path if path.startswith(".") else f"./{path}"


def resolve_path(path: Union[str, Path], root: Path) -> Path:
    """Anchor a relative *path* at *root*; absolute paths are returned as is."""
    candidate: Path = Path(path)
    return candidate if candidate.is_absolute() else root / candidate


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def remove_directory(path: Path) -> bool:
    """
    Delete *path* and everything below it.

    Returns True when something was removed.
    """
    if not path.exists():
        return False
    shutil.rmtree(path)
    logger.debug("Removed directory: %s", path)
    return True


# ---------------------------------------------------------------------------
# Checksum
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Import strings ("package.module:attribute")
# ---------------------------------------------------------------------------


def import_string(dotted_path: str) -> Any:
    """
    Import an object from a ``"package.module:attribute"`` string.

    A dotted form without a colon (``"package.module.attribute"``) is also
    accepted.  Raises ``ImportError`` when the module or attribute is missing.
    """
    if ":" in dotted_path:
        module_path, _, attr_path = dotted_path.partition(":")
    else:
        module_path, _, attr_path = dotted_path.rpartition(".")

    if not module_path or not attr_path:
        raise ImportError(f"'{dotted_path}' is not a valid import string.")

    obj: Any = importlib.import_module(module_path)
    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as exc:
            raise ImportError(
                f"Module '{module_path}' has no attribute '{attr_path}'."
            ) from exc
    return obj


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("generate models") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_camel_case",
    "to_singular",
    "classify",
    "lower_camel_key",
    "strip_serializer_suffix",
    "leading_type_name",
    "relative_import_path",
    "resolve_path",
    "ensure_directory",
    "remove_directory",
    "sha256_hex",
    "import_string",
    "Timer",
]

logger.debug("typespec_serializers.utils loaded (%d public symbols).", len(__all__))
