# File: typespec_serializers/inference.py
"""
TypeSpec Serializers - Type Inference Engine
==============================================
Resolves every attribute of a ``SerializerDefinition`` into a ``Property``
and assembles the resulting ``Interface``.

Each attribute is resolved by the first rule that applies:

    1. explicit type, or a nested serializer (``ModelReference``)
    2. enum declared on the backing record for the source column
    3. column metadata of the backing record
    4. ``typespec_from`` hint → ``<Hint>.<property>::type``
    5. unresolved (rendered as ``unknown``)

``flat_one`` associations splice the nested serializer's properties in place.
Interfaces are memoized on the definition, tagged with the config revision.
"""

from __future__ import annotations

import logging
import operator
from typing import Any, Callable, Dict, List, Optional, Set

from typespec_serializers.config import ConfigurationError, GeneratorConfig
from typespec_serializers.models import (
    AttributeDeclaration,
    ColumnInfo,
    Interface,
    ModelReference,
    Property,
    SerializerDefinition,
    dedupe_properties,
)
from typespec_serializers.records import EmptyRecordProvider, RecordMetadataProvider
from typespec_serializers.registry import SerializerRegistry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.inference")


def enum_union(values: List[str]) -> str:
    """``["a", "b"]`` → ``'"a" | "b"'``."""
    return " | ".join(f'"{value}"' for value in values)


class TypeInferenceEngine:
    """
    Builds ``Interface`` objects from serializer definitions.

    Args:
        config: Shared generator configuration (held by reference).
        registry: Used to resolve nested serializer names.
        records: Source of column and enum metadata.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        registry: SerializerRegistry,
        records: Optional[RecordMetadataProvider] = None,
    ) -> None:
        self.config: GeneratorConfig = config
        self.registry: SerializerRegistry = registry
        self.records: RecordMetadataProvider = records or EmptyRecordProvider()

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def interface_for(self, definition: SerializerDefinition) -> Interface:
        """Return the (memoized) ``Interface`` of *definition*."""
        revision: int = self.config.revision
        cached: Optional[Interface] = definition.cached_interface(revision)
        if cached is not None:
            logger.debug("Interface cache hit for %s.", definition.name)
            return cached

        interface: Interface = Interface(
            name=self.config.tsp_name(definition.name),
            filename=self.config.tsp_filename(definition.name),
            properties=self.properties_for(definition),
        )
        definition.remember_interface(interface, revision)
        return interface

    def properties_for(self, definition: SerializerDefinition) -> List[Property]:
        """Resolved, deduplicated and sorted properties of *definition*."""
        properties: List[Property] = self._collect(definition, visiting=set())
        return self._sort(dedupe_properties(properties))

    # -----------------------------------------------------------------
    # Resolution
    # -----------------------------------------------------------------

    def _collect(self, definition: SerializerDefinition, visiting: Set[str]) -> List[Property]:
        visiting = visiting | {f"{definition.module}.{definition.name}"}
        transform: Callable[[str], str] = self.config.key_transform(definition.transform_keys)

        columns: Dict[str, ColumnInfo] = {}
        enums: Dict[str, List[str]] = {}
        if definition.model_name:
            columns = self.records.columns_for(definition.model_name)
            enums = self.records.enums_for(definition.model_name)
            if not columns and not enums:
                logger.debug("No record metadata for %s (%s).", definition.model_name, definition.name)

        properties: List[Property] = []
        for attr in definition.attributes:
            if attr.association == "flat":
                properties.extend(self._flat_properties(definition, attr, visiting))
                continue

            prop: Property = Property(
                name=transform(attr.key),
                type=self._reference_for(definition, attr) if attr.serializer else attr.type,
                optional=attr.optional or attr.conditional,
                multi=attr.association == "many",
                column_name=attr.value_from,
            )
            self._infer(prop, columns, enums, definition.typespec_from)
            properties.append(prop)
        return properties

    def _reference_for(
        self, definition: SerializerDefinition, attr: AttributeDeclaration
    ) -> ModelReference:
        nested_cls: type = self._resolve_serializer(definition, attr)
        return ModelReference(
            name=self.config.tsp_name(nested_cls.__qualname__),
            filename=self.config.tsp_filename(nested_cls.__qualname__),
        )

    def _resolve_serializer(
        self, definition: SerializerDefinition, attr: AttributeDeclaration
    ) -> type:
        """
        Class of the serializer *attr* nests, looked up like a name in a class body.

        Classes nested in the owner (or in its enclosing classes) come first,
        then the registry-wide lookup by qualified name.

        Raises:
            ConfigurationError: If no loaded serializer matches.
        """
        name: str = attr.serializer or ""
        module: str = attr.serializer_module or definition.module
        scope: List[str] = definition.name.split(".")
        while scope:
            scoped: Optional[type] = self.registry.lookup(f"{module}.{'.'.join(scope)}.{name}")
            if scoped is not None:
                return scoped
            scope.pop()

        try:
            return self.registry.resolve(name, attr.serializer_module)
        except LookupError as exc:
            raise ConfigurationError(
                f"Serializer '{name}' used by '{attr.name}' of {definition.name} "
                "has not been loaded."
            ) from exc

    def _flat_properties(
        self,
        definition: SerializerDefinition,
        attr: AttributeDeclaration,
        visiting: Set[str],
    ) -> List[Property]:
        nested_cls: type = self._resolve_serializer(definition, attr)
        nested: SerializerDefinition = self.registry.definition_for(nested_cls)
        if f"{nested.module}.{nested.name}" in visiting:
            logger.warning(
                "Skipping flat attribute '%s' of %s: %s is already being flattened.",
                attr.name,
                definition.name,
                nested.name,
            )
            return []
        return self._collect(nested, visiting)

    def _infer(
        self,
        prop: Property,
        columns: Dict[str, ColumnInfo],
        enums: Dict[str, List[str]],
        typespec_from: Optional[str],
    ) -> None:
        if prop.type is not None:
            return

        column_name: str = prop.column_name or prop.name
        if column_name in enums:
            prop.type = enum_union(enums[column_name])
        elif column_name in columns:
            column: ColumnInfo = columns[column_name]
            if column.array:
                prop.multi = True
            if column.nullable and not column.has_default:
                prop.optional = True
            prop.type = self.config.sql_to_typespec_type_mapping.get(
                column.sql_type, self.config.sql_type_default
            )
            if prop.type is None:
                logger.debug("Unmapped column type '%s' for %s.", column.sql_type, prop.name)
        elif typespec_from:
            prop.type = f"{typespec_from}.{prop.name}::type"

    def _sort(self, properties: List[Property]) -> List[Property]:
        sort_by: Any = self.config.sort_properties_by
        if sort_by is None:
            return properties
        key: Callable[[Property], Any] = (
            operator.attrgetter(sort_by) if isinstance(sort_by, str) else sort_by
        )
        return sorted(properties, key=key)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TypeInferenceEngine",
    "enum_union",
]
