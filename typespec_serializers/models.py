# File: typespec_serializers/models.py
"""
TypeSpec Serializers - Core Data Models
=========================================
Pydantic V2 models shared by every stage of the pipeline:

    Discovery → Inference → Import resolution → Rendering → Export

* ``ColumnInfo`` / ``RecordSchema`` describe what the backing record layer
  tells us about a record type.
* ``AttributeDeclaration`` / ``SerializerDefinition`` are the immutable
  records produced by discovery for every serializer class.
* ``Property`` / ``Interface`` are the resolved output: one generated
  TypeSpec model and its fields.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    computed_field,
    field_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.models")

#: Rendered in place of a type that inference could not resolve.
UNKNOWN_TYPE: str = "unknown"

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Backing record metadata
# ---------------------------------------------------------------------------


class ColumnInfo(BaseModel):
    """What the record layer exposes about one column."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    sql_type: str = Field(
        ..., min_length=1, description="Storage type, e.g. 'integer' or 'text'."
    )
    nullable: bool = Field(default=True, description="Whether the column allows NULL.")
    has_default: bool = Field(
        default=False, description="True when a client or server default exists."
    )
    array: bool = Field(default=False, description="True for array columns.")

    def __repr__(self) -> str:
        null_flag: str = " NULL" if self.nullable else " NOT NULL"
        array_flag: str = "[]" if self.array else ""
        return f"<Column {self.name} {self.sql_type}{array_flag}{null_flag}>"


class RecordSchema(BaseModel):
    """
    Column and enum metadata of one backing record type.

    ``enums`` maps a column name to its declared value names, in order.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Record type name.")
    columns: Dict[str, ColumnInfo] = Field(default_factory=dict)
    enums: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("columns", mode="before")
    @classmethod
    def _columns_from_list(cls, v: Any) -> Any:
        # Accept a list of column mappings, keyed by their own names.
        if isinstance(v, list):
            return {
                (c["name"] if isinstance(c, dict) else c.name): c for c in v
            }
        return v


# ---------------------------------------------------------------------------
# Serializer definitions (produced by discovery)
# ---------------------------------------------------------------------------

AssociationKind = Literal["one", "many", "flat"]


class AttributeDeclaration(BaseModel):
    """One raw attribute declaration of a serializer, as written by the user."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Attribute name on the serializer.")
    key: str = Field(..., min_length=1, description="Output key before transformation.")
    type: Optional[str] = Field(default=None, description="Explicit type expression.")
    serializer: Optional[str] = Field(
        default=None, description="Qualified name of the nested serializer."
    )
    serializer_module: Optional[str] = Field(
        default=None, description="Module where the nested serializer is defined."
    )
    association: Optional[AssociationKind] = Field(default=None)
    optional: bool = Field(default=False)
    conditional: bool = Field(
        default=False, description="Rendered only when a condition holds."
    )
    value_from: str = Field(..., min_length=1, description="Source column name.")

    def __repr__(self) -> str:
        kind: str = f" {self.association}" if self.association else ""
        return f"<Attribute {self.name}{kind}>"


class SerializerDefinition(BaseModel):
    """
    Immutable description of a discovered serializer class.

    Holds a private memo cell for the ``Interface`` built from it.  The cell
    is tagged with the configuration revision it was built under, so a
    reconfigure forces a rebuild on next access.
    """

    model_config = ConfigDict(
        strict=False,
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    name: str = Field(..., min_length=1, description="Qualified class name.")
    module: str = Field(default="", description="Module that defines the class.")
    source_file: Optional[str] = Field(default=None)
    attributes: List[AttributeDeclaration] = Field(default_factory=list)
    model_name: Optional[str] = Field(
        default=None, description="Backing record type to read column metadata from."
    )
    typespec_from: Optional[str] = Field(
        default=None, description="Interface whose field types are mirrored."
    )
    transform_keys: Optional[Callable[[str], str]] = Field(default=None)

    _interface: Optional["Interface"] = PrivateAttr(default=None)
    _interface_revision: int = PrivateAttr(default=-1)

    @computed_field  # type: ignore[misc]
    @property
    def is_inline(self) -> bool:
        """True for serializers nested inside another serializer class."""
        return "Serializer." in self.name

    def cached_interface(self, revision: int) -> Optional["Interface"]:
        if self._interface is not None and self._interface_revision == revision:
            return self._interface
        return None

    def remember_interface(self, interface: "Interface", revision: int) -> None:
        self._interface = interface
        self._interface_revision = revision

    def invalidate(self) -> None:
        self._interface = None
        self._interface_revision = -1

    def __repr__(self) -> str:
        return f"<SerializerDefinition {self.name} ({len(self.attributes)} attrs)>"


# ---------------------------------------------------------------------------
# Resolved output
# ---------------------------------------------------------------------------


class ModelReference(BaseModel):
    """Points at another generated model: its TypeSpec name and file."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)


class Property(BaseModel):
    """
    One field of a generated model.

    ``type`` is a TypeSpec expression, a ``ModelReference`` for associations,
    or ``None`` when inference found nothing (rendered as ``unknown``).
    ``column_name`` is only used while inferring.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    type: Optional[Union[ModelReference, str]] = Field(default=None)
    optional: bool = Field(default=False)
    multi: bool = Field(default=False)
    column_name: Optional[str] = Field(default=None)

    @property
    def type_name(self) -> str:
        if isinstance(self.type, ModelReference):
            return self.type.name
        return self.type or UNKNOWN_TYPE

    def as_typespec(self) -> str:
        optional_flag: str = "?" if self.optional else ""
        multi_flag: str = "[]" if self.multi else ""
        return f"{self.name}{optional_flag}: {self.type_name}{multi_flag};"

    def __repr__(self) -> str:
        return f"<Property {self.as_typespec()}>"


def dedupe_properties(properties: List[Property]) -> List[Property]:
    """
    Keep one property per name.

    The survivor takes the position of the first occurrence and the value of
    the last one.
    """
    by_name: Dict[str, Property] = {}
    for prop in properties:
        by_name[prop.name] = prop
    return list(by_name.values())


class Interface(BaseModel):
    """A generated TypeSpec model: its name, output file and properties."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="TypeSpec model name.")
    filename: str = Field(
        ..., min_length=1, description="Output path relative to output_dir, no extension."
    )
    properties: List[Property] = Field(default_factory=list)

    @field_validator("properties")
    @classmethod
    def _unique_property_names(cls, v: List[Property]) -> List[Property]:
        return dedupe_properties(v)

    def as_typespec(self, namespace: Optional[str] = None) -> str:
        """Render the ``model`` block, one extra indent level inside a namespace."""
        indent: int = 2 if namespace else 1
        pad: str = "  " * indent
        lines: List[str] = [f"model {self.name} {{"]
        lines.extend(f"{pad}{prop.as_typespec()}" for prop in self.properties)
        lines.append(f"{'  ' * (indent - 1)}}}")
        return "\n".join(lines)

    def describe(self) -> str:
        """Full structural description, stable across runs."""
        return json.dumps(self.model_dump(mode="json"), sort_keys=True)

    def cache_key(self, config: Any) -> str:
        """Everything that affects the rendered file: structure, imports and namespace."""
        from typespec_serializers.imports import used_imports

        imports: List[str] = used_imports(self, config)
        return "\n".join([config.namespace or "", self.describe(), *imports])

    def __repr__(self) -> str:
        return f"<Interface {self.name} ({len(self.properties)} props) → {self.filename}>"


SerializerDefinition.model_rebuild()

# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "UNKNOWN_TYPE",
    "ColumnInfo",
    "RecordSchema",
    "AssociationKind",
    "AttributeDeclaration",
    "SerializerDefinition",
    "ModelReference",
    "Property",
    "Interface",
    "dedupe_properties",
]

logger.debug("typespec_serializers.models loaded (%d public symbols).", len(__all__))
