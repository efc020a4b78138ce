# File: typespec_serializers/exporters.py
"""
TypeSpec Serializers - Cache-Aware File Writer
================================================
Writes generated files only when their content would change.

Every generated file starts with a single comment line holding the SHA-256
digest of its cache key::

    // TypeSpecSerializers CacheKey 9f86d081884c7d65...

Before writing, the existing first line is compared with the freshly computed
one; when they match the file is left untouched and the render callback is
never invoked.  Running the generator twice with no underlying change
therefore performs zero writes on the second run.

I/O errors propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List

from typespec_serializers.config import GeneratorConfig
from typespec_serializers.utils import ensure_directory, remove_directory, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.exporters")

CACHE_KEY_PREFIX: str = "// TypeSpecSerializers CacheKey "


def cache_key_comment(cache_key: str) -> str:
    """Leading comment line (newline included) for *cache_key*."""
    return f"{CACHE_KEY_PREFIX}{sha256_hex(cache_key)}\n"


@dataclass(frozen=True, slots=True)
class FileRecord:
    """One file written by the writer."""

    relative_path: str
    absolute_path: str
    size_bytes: int


@dataclass(slots=True)
class WriteStats:
    written: List[FileRecord] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return len(self.written)

    @property
    def skips(self) -> int:
        return len(self.skipped)


class CachedFileWriter:
    """
    Conditional writer rooted at the configured output directory.

    Usage::

        writer = CachedFileWriter(config)
        writer.write_if_changed("Song", cache_key, lambda: render(song))

    Thread-safety: NOT thread-safe.  Use one writer per output directory.
    """

    def __init__(self, config: GeneratorConfig) -> None:
        self.config: GeneratorConfig = config
        self.stats: WriteStats = WriteStats()

    @property
    def output_path(self) -> Path:
        return self.config.output_path

    def target_for(self, filename: str, extension: str = "tsp") -> Path:
        return self.output_path / f"{filename}.{extension}"

    def write_if_changed(
        self,
        filename: str,
        cache_key: str,
        render: Callable[[], str],
        *,
        force: bool = False,
        extension: str = "tsp",
    ) -> bool:
        """
        Write ``<output>/<filename>.<extension>`` when its cache key changed.

        Args:
            filename: Path relative to the output directory, no extension.
            cache_key: Everything that affects the rendered content.
            render: Produces the body; only called when a write is needed.
            force: Rewrite even when the cache key matches.

        Returns:
            True when the file was (re)written.
        """
        target: Path = self.target_for(filename, extension)
        ensure_directory(target.parent)
        comment: str = cache_key_comment(cache_key)

        with target.open("a+", encoding="utf-8") as fh:
            fh.seek(0)
            if not force and fh.readline() == comment:
                self.stats.skipped.append(filename)
                logger.debug("Up to date: %s.%s", filename, extension)
                return False

            body: str = render()
            fh.seek(0)
            fh.truncate(0)
            fh.write(comment)
            fh.write(body)
            size: int = fh.tell()

        self.stats.written.append(
            FileRecord(
                relative_path=f"{filename}.{extension}",
                absolute_path=str(target),
                size_bytes=size,
            )
        )
        logger.info("Wrote %s.%s", filename, extension)
        return True

    def clean_output(self) -> bool:
        """Remove the whole output directory; True when something was removed."""
        removed: bool = remove_directory(self.output_path)
        if removed:
            logger.info("Cleared output directory %s.", self.output_path)
        return removed

    def reset_stats(self) -> WriteStats:
        """Return the counters collected so far and start new ones."""
        stats: WriteStats = self.stats
        self.stats = WriteStats()
        return stats


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CACHE_KEY_PREFIX",
    "cache_key_comment",
    "CachedFileWriter",
    "FileRecord",
    "WriteStats",
]
