# File: typespec_serializers/records.py
"""
TypeSpec Serializers - Backing Record Metadata
================================================
Inference only needs a narrow view of the record (ORM) layer: the columns of a
record type and the enum value sets declared on it.  Anything implementing
``RecordMetadataProvider`` can supply that view.

Providers:
    EmptyRecordProvider       Knows nothing; every attribute falls through.
    StaticRecordProvider      Plain mappings, or a YAML / JSON file.
    SQLAlchemyRecordProvider  Introspects a SQLAlchemy declarative registry.

Unknown records always yield empty mappings, never errors.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union, runtime_checkable

from typespec_serializers.config import ConfigurationError
from typespec_serializers.models import ColumnInfo, RecordSchema
from typespec_serializers.utils import import_string, resolve_path

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.records")


@runtime_checkable
class RecordMetadataProvider(Protocol):
    """Read-only accessor for column and enum metadata of record types."""

    def columns_for(self, record_name: str) -> Dict[str, ColumnInfo]:
        ...

    def enums_for(self, record_name: str) -> Dict[str, List[str]]:
        ...


class EmptyRecordProvider:
    def columns_for(self, record_name: str) -> Dict[str, ColumnInfo]:
        return {}

    def enums_for(self, record_name: str) -> Dict[str, List[str]]:
        return {}

    def __repr__(self) -> str:
        return "<EmptyRecordProvider>"


# ---------------------------------------------------------------------------
# Static provider
# ---------------------------------------------------------------------------


class StaticRecordProvider:
    """
    Record metadata given up front.

    Accepts ``RecordSchema`` objects or raw mappings such as::

        {"Song": {"columns": [{"name": "title", "sql_type": "string"}],
                  "enums": {"genre": ["classical", "jazz"]}}}
    """

    def __init__(self, records: Union[Mapping[str, Any], List[RecordSchema], None] = None) -> None:
        self._records: Dict[str, RecordSchema] = {}
        if isinstance(records, Mapping):
            for name, data in records.items():
                self.add(data if isinstance(data, RecordSchema) else RecordSchema(name=name, **data))
        else:
            for schema in records or []:
                self.add(schema)

    @classmethod
    def from_file(cls, path: Path) -> "StaticRecordProvider":
        """
        Load records from a ``.yaml``/``.yml`` or ``.json`` file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the content is not a mapping of records.
        """
        if not path.is_file():
            raise FileNotFoundError(f"Record metadata file not found: {path}")

        text: str = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            data: Any = json.loads(text)
        else:
            import yaml

            data = yaml.safe_load(text) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Expected a mapping of record names in {path}, got {type(data).__name__}."
            )
        logger.info("Loaded metadata for %d record(s) from %s.", len(data), path)
        return cls(data)

    def add(self, schema: RecordSchema) -> None:
        self._records[schema.name] = schema

    def columns_for(self, record_name: str) -> Dict[str, ColumnInfo]:
        schema: Optional[RecordSchema] = self._records.get(record_name)
        return dict(schema.columns) if schema else {}

    def enums_for(self, record_name: str) -> Dict[str, List[str]]:
        schema: Optional[RecordSchema] = self._records.get(record_name)
        return dict(schema.enums) if schema else {}

    def __repr__(self) -> str:
        return f"<StaticRecordProvider records={sorted(self._records)}>"


# ---------------------------------------------------------------------------
# SQLAlchemy provider
# ---------------------------------------------------------------------------

#: SQLAlchemy ``__visit_name__`` → storage type name used by the mapping table.
_SQLALCHEMY_VISIT_NAMES: Dict[str, str] = {
    "integer": "integer",
    "INTEGER": "integer",
    "INT": "integer",
    "big_integer": "bigint",
    "BIGINT": "bigint",
    "small_integer": "smallint",
    "SMALLINT": "smallint",
    "string": "string",
    "VARCHAR": "string",
    "CHAR": "string",
    "unicode": "string",
    "NVARCHAR": "string",
    "text": "text",
    "TEXT": "text",
    "unicode_text": "text",
    "CLOB": "text",
    "CITEXT": "citext",
    "boolean": "boolean",
    "BOOLEAN": "boolean",
    "date": "date",
    "DATE": "date",
    "datetime": "datetime",
    "DATETIME": "datetime",
    "TIMESTAMP": "timestamp",
    "time": "time",
    "TIME": "time",
    "interval": "interval",
    "INTERVAL": "interval",
    "numeric": "numeric",
    "NUMERIC": "numeric",
    "DECIMAL": "decimal",
    "float": "float",
    "FLOAT": "float",
    "REAL": "real",
    "double": "double",
    "DOUBLE": "double",
    "DOUBLE_PRECISION": "double",
    "large_binary": "binary",
    "BLOB": "blob",
    "BINARY": "binary",
    "VARBINARY": "binary",
    "BYTEA": "binary",
    "JSON": "json",
    "JSONB": "jsonb",
    "uuid": "uuid",
    "UUID": "uuid",
    "enum": "string",
}


def sqlalchemy_storage_type(column_type: Any) -> str:
    """Storage type name of a SQLAlchemy column type instance."""
    visit_name: str = getattr(column_type, "__visit_name__", "") or ""
    if visit_name in ("datetime", "DATETIME", "TIMESTAMP") and getattr(column_type, "timezone", False):
        return "timestamptz"
    if visit_name == "ARRAY":
        return sqlalchemy_storage_type(column_type.item_type)
    if visit_name in _SQLALCHEMY_VISIT_NAMES:
        return _SQLALCHEMY_VISIT_NAMES[visit_name]
    return visit_name.lower() or type(column_type).__name__.lower()


class SQLAlchemyRecordProvider:
    """
    Reads columns and enums from SQLAlchemy declarative mappers.

    ``base`` may be a declarative base class (anything with a ``registry``)
    or a ``sqlalchemy.orm.registry`` itself.  Mapped classes are looked up by
    class name.
    """

    def __init__(self, base: Any) -> None:
        self._registry: Any = getattr(base, "registry", base)
        self._cache: Dict[str, RecordSchema] = {}

    def _mapper_for(self, record_name: str) -> Any:
        for mapper in self._registry.mappers:
            if mapper.class_.__name__ == record_name:
                return mapper
        return None

    def schema_for(self, record_name: str) -> Optional[RecordSchema]:
        if record_name in self._cache:
            return self._cache[record_name]

        mapper: Any = self._mapper_for(record_name)
        if mapper is None:
            logger.warning("No SQLAlchemy mapping found for record '%s'.", record_name)
            return None

        from sqlalchemy import ARRAY, Enum

        columns: List[ColumnInfo] = []
        enums: Dict[str, List[str]] = {}
        for prop in mapper.column_attrs:
            column: Any = prop.columns[0]
            column_type: Any = column.type
            columns.append(
                ColumnInfo(
                    name=prop.key,
                    sql_type=sqlalchemy_storage_type(column_type),
                    nullable=bool(column.nullable),
                    has_default=column.default is not None or column.server_default is not None,
                    array=isinstance(column_type, ARRAY),
                )
            )
            if isinstance(column_type, Enum):
                enums[prop.key] = list(column_type.enums)

        schema: RecordSchema = RecordSchema(name=record_name, columns=columns, enums=enums)
        self._cache[record_name] = schema
        logger.debug("Introspected %s: %d columns, %d enums.", record_name, len(columns), len(enums))
        return schema

    def columns_for(self, record_name: str) -> Dict[str, ColumnInfo]:
        schema: Optional[RecordSchema] = self.schema_for(record_name)
        return dict(schema.columns) if schema else {}

    def enums_for(self, record_name: str) -> Dict[str, List[str]]:
        schema: Optional[RecordSchema] = self.schema_for(record_name)
        return dict(schema.enums) if schema else {}

    def __repr__(self) -> str:
        return f"<SQLAlchemyRecordProvider mappers={len(self._registry.mappers)}>"


# ---------------------------------------------------------------------------
# Resolution from configuration
# ---------------------------------------------------------------------------

_RECORD_FILE_SUFFIXES = (".yaml", ".yml", ".json")


def resolve_record_provider(source: Any, root: Path) -> RecordMetadataProvider:
    """
    Build a provider from the ``record_provider`` config option.

    ``None`` → empty provider; a record file path → ``StaticRecordProvider``;
    an import string → whatever it points at; a SQLAlchemy base or registry →
    ``SQLAlchemyRecordProvider``; a provider object → itself.
    """
    if source is None:
        return EmptyRecordProvider()

    if isinstance(source, (str, Path)) and str(source).lower().endswith(_RECORD_FILE_SUFFIXES):
        return StaticRecordProvider.from_file(resolve_path(source, root))

    if isinstance(source, str):
        try:
            source = import_string(source)
        except ImportError as exc:
            raise ConfigurationError(f"Cannot import record provider '{source}': {exc}") from exc

    if hasattr(source, "mappers") or hasattr(getattr(source, "registry", None), "mappers"):
        return SQLAlchemyRecordProvider(source)

    if isinstance(source, RecordMetadataProvider):
        return source

    raise ConfigurationError(
        f"Unsupported record provider {source!r}: expected a provider, a SQLAlchemy "
        "declarative base, an import string or a record file path."
    )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RecordMetadataProvider",
    "EmptyRecordProvider",
    "StaticRecordProvider",
    "SQLAlchemyRecordProvider",
    "sqlalchemy_storage_type",
    "resolve_record_provider",
]
