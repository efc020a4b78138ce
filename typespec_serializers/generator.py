# File: typespec_serializers/generator.py
"""
TypeSpec Serializers - Generation Orchestrator
================================================
Connects every stage together:

    Source files → Registry (discovery) → Inference → Imports → Templates
                 → Cache-aware writer

``TypeSpecGenerator`` is both the programmatic API and the backend of the
CLI.  Two entry points:

* ``generate()``          full pass over every discovered serializer;
* ``generate_changed()``  incremental pass driven by the ``ChangeSet`` that a
                          ``ChangeTracker`` fills from file-system events.

Removing any serializer file clears the whole output directory before the
next pass, since the outputs of removed serializers cannot be told apart.

Error handling strategy:
    - An unresolvable base serializer raises ``ConfigurationError``.
    - Unresolvable attribute types are rendered as ``unknown``.
    - File-system errors propagate.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from typespec_serializers.changes import ChangeSet, ChangeTracker
from typespec_serializers.config import FORCE_ENV_VAR, GeneratorConfig, get_config
from typespec_serializers.exporters import CachedFileWriter, WriteStats
from typespec_serializers.imports import used_imports
from typespec_serializers.inference import TypeInferenceEngine
from typespec_serializers.models import Interface, SerializerDefinition
from typespec_serializers.records import RecordMetadataProvider, resolve_record_provider
from typespec_serializers.registry import SerializerRegistry, registry as default_registry
from typespec_serializers.templates import index_file_content, model_file_content
from typespec_serializers.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.generator")

INDEX_FILENAME: str = "index"

_FALSE_VALUES = ("", "0", "false", "no", "off")


def force_from_env() -> bool:
    """Whether ``TYPESPEC_SERIALIZERS_FORCE`` asks for a full rewrite."""
    return os.environ.get(FORCE_ENV_VAR, "").strip().lower() not in _FALSE_VALUES


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """Outcome of one generation pass."""

    output_directory: str = ""
    serializers: List[str] = field(default_factory=list)
    files_written: List[str] = field(default_factory=list)
    files_skipped: List[str] = field(default_factory=list)
    forced: bool = False
    elapsed_seconds: float = 0.0

    @property
    def total_serializers(self) -> int:
        return len(self.serializers)

    def summary(self) -> str:
        """Human-readable summary, one serializer per line."""
        lines: List[str] = [
            f"Generating TypeSpec descriptions...completed in {self.elapsed_seconds:.2f} seconds.",
            f"Found {self.total_serializers} serializers:",
        ]
        lines.extend(f"\t{name}" for name in self.serializers)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# TypeSpecGenerator
# ---------------------------------------------------------------------------


class TypeSpecGenerator:
    """
    Generates one ``.tsp`` file per serializer, plus ``index.tsp``.

    Usage::

        generator = TypeSpecGenerator()
        report = generator.generate()
        print(report.summary())

    Args:
        config: Shared configuration; defaults to the process-wide one.
        registry: Serializer registry; defaults to the one ``BaseSerializer``
                  subclasses register with.
        records: Record metadata provider; when omitted it is built from
                 ``config.record_provider`` (and rebuilt after a reconfigure).
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        *,
        registry: Optional[SerializerRegistry] = None,
        records: Optional[RecordMetadataProvider] = None,
    ) -> None:
        self.config: GeneratorConfig = config if config is not None else get_config()
        self.registry: SerializerRegistry = registry if registry is not None else default_registry
        self.writer: CachedFileWriter = CachedFileWriter(self.config)
        self.changes: ChangeSet = ChangeSet()
        self._records: Optional[RecordMetadataProvider] = records
        self._engine: Optional[TypeInferenceEngine] = None
        self._engine_revision: int = -1
        self._tracker: Optional[ChangeTracker] = None

    # -----------------------------------------------------------------
    # Collaborators
    # -----------------------------------------------------------------

    @property
    def engine(self) -> TypeInferenceEngine:
        """Inference engine, rebuilt when the configured record provider may have changed."""
        if self._engine is None or (
            self._records is None and self._engine_revision != self.config.revision
        ):
            records: RecordMetadataProvider = (
                self._records
                if self._records is not None
                else resolve_record_provider(self.config.record_provider, self.config.root)
            )
            self._engine = TypeInferenceEngine(self.config, self.registry, records)
            self._engine_revision = self.config.revision
        return self._engine

    def reconfigure(self, **changes: Any) -> GeneratorConfig:
        """Update the shared configuration and drop every memoized interface."""
        self.config.reconfigure(**changes)
        self.registry.invalidate()
        return self.config

    # -----------------------------------------------------------------
    # Full generation
    # -----------------------------------------------------------------

    def generate(self, force: Optional[bool] = None) -> GenerationReport:
        """
        Write the model file of every discovered serializer.

        Args:
            force: Clear the output directory and rewrite everything.
                   Defaults to the ``TYPESPEC_SERIALIZERS_FORCE`` toggle.
        """
        if force is None:
            force = force_from_env()

        self.writer.reset_stats()
        with Timer("generate") as t:
            if force:
                self.writer.clean_output()

            self.load_serializers(self.all_serializer_files())
            if not self.config.namespace:
                self.generate_index_file(force=force)

            definitions: List[SerializerDefinition] = self.loaded_serializers()
            for definition in definitions:
                self.generate_model_for(definition, force=force)

        stats: WriteStats = self.writer.reset_stats()
        report: GenerationReport = GenerationReport(
            output_directory=str(self.config.output_path),
            serializers=[d.name for d in definitions],
            files_written=[record.relative_path for record in stats.written],
            files_skipped=list(stats.skipped),
            forced=force,
            elapsed_seconds=t.elapsed,
        )
        logger.info(
            "Generated %d serializers in %.3fs (%d written, %d unchanged).",
            report.total_serializers,
            t.elapsed,
            stats.writes,
            stats.skips,
        )
        return report

    def generate_model_for(self, definition: SerializerDefinition, *, force: bool = False) -> bool:
        """Write the model file of one serializer; True when it was rewritten."""
        interface: Interface = self.engine.interface_for(definition)
        return self.writer.write_if_changed(
            interface.filename,
            interface.cache_key(self.config),
            lambda: model_file_content(
                interface, used_imports(interface, self.config), self.config.namespace
            ),
            force=force,
        )

    def generate_index_file(self, *, force: bool = False) -> bool:
        """Write ``index.tsp``, keyed on the list of serializer source files."""
        cache_key: str = "\n".join(self._relative_to_root(p) for p in self.all_serializer_files())

        def render() -> str:
            filenames: List[str] = [
                self.config.tsp_filename(d.name)
                for d in self.loaded_serializers()
                if not d.is_inline
            ]
            return index_file_content(filenames)

        return self.writer.write_if_changed(INDEX_FILENAME, cache_key, render, force=force)

    # -----------------------------------------------------------------
    # Incremental generation
    # -----------------------------------------------------------------

    def generate_changed(self) -> Optional[GenerationReport]:
        """
        Regenerate after file-system changes; ``None`` when nothing changed.

        Pending changes are taken from ``self.changes`` before the pass, so
        batches recorded meanwhile are left for the next call.  If the pass
        raises, the taken changes are put back.
        """
        added, removed, modified = self.changes.drain()
        if not (added or removed or modified):
            return None

        try:
            if removed:
                self.writer.clean_output()
                for path in sorted(removed):
                    self.registry.unload_file(path)

            changed: List[Path] = sorted(p for p in added | modified if p.is_file())
            self.registry.load_files(changed, reload=True)
            self.registry.invalidate()
            logger.info("Reloaded %d changed serializer file(s).", len(changed))

            return self.generate()
        except Exception:
            self.changes.record(added=added, removed=removed, modified=modified)
            raise

    def track_changes(self, *, start: bool = True) -> ChangeTracker:
        """The (single) tracker feeding ``self.changes``."""
        if self._tracker is None:
            self._tracker = ChangeTracker(self.config.serializers_paths, self.changes)
        if start:
            self._tracker.start()
        return self._tracker

    # -----------------------------------------------------------------
    # Discovery
    # -----------------------------------------------------------------

    def all_serializer_files(self) -> List[Path]:
        files: List[Path] = []
        for directory in self.config.serializers_paths:
            if not directory.is_dir():
                logger.debug("Serializer directory %s does not exist.", directory)
                continue
            files.extend(p for p in directory.rglob("*.py") if "__pycache__" not in p.parts)
        return sorted(files)

    def load_serializers(self, files: List[Path]) -> None:
        for path in files:
            if not self.registry.is_loaded(path):
                self.registry.load_file(path)

    def loaded_serializers(self) -> List[SerializerDefinition]:
        """
        Every eligible serializer, sorted by name.

        Raises:
            ConfigurationError: If a configured base serializer can't be found.
        """
        definitions: List[SerializerDefinition] = self.registry.discover(self.config.base_serializers)
        return [d for d in definitions if not self.skip_serializer(d)]

    def skip_serializer(self, definition: SerializerDefinition) -> bool:
        return definition.name in self.config.base_serializers or bool(
            self.config.skip_serializer_if(definition)
        )

    def _relative_to_root(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.config.root.resolve()).as_posix()
        except ValueError:
            return path.as_posix()

    def __repr__(self) -> str:
        return f"<TypeSpecGenerator output={self.config.output_path} config={self.config!r}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "INDEX_FILENAME",
    "GenerationReport",
    "TypeSpecGenerator",
    "force_from_env",
]

logger.debug("typespec_serializers.generator loaded.")
