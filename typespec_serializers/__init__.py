# File: typespec_serializers/__init__.py
"""
TypeSpec Serializers - TypeSpec Models from Serializer Definitions
====================================================================

Inspects declarative serializer classes and writes equivalent TypeSpec
(``.tsp``) models, so client code gets accurate mirrors of the server's
response shapes.  Files are rewritten only when their content changes.

Architecture overview::

    ┌──────────────┐     ┌───────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ TypeSpecGenerator │────▶│ CachedFileWriter │
    │   (cli.py)   │     │  (generator.py)   │     │  (exporters.py)  │
    └──────────────┘     └─────────┬─────────┘     └──────────────────┘
                                   │
              ┌──────────┬─────────┼──────────┬───────────┐
              ▼          ▼         ▼          ▼           ▼
         ┌────────┐ ┌─────────┐ ┌───────┐ ┌─────────┐ ┌─────────┐
         │registry│ │inference│ │imports│ │templates│ │ changes │
         └────────┘ └─────────┘ └───────┘ └─────────┘ └─────────┘

Usage::

    # Declaring serializers
    from typespec_serializers import BaseSerializer, attribute, has_many

    class ComposerSerializer(BaseSerializer, model="Composer"):
        id = attribute()
        name = attribute()
        songs = has_many("SongSerializer")

    # As a library
    from typespec_serializers import TypeSpecGenerator, configure
    configure(output_dir="frontend/typespec/serializers")
    print(TypeSpecGenerator().generate().summary())

    # From the command line
    typespec-serializers generate --force
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from typespec_serializers.changes import ChangeSet, ChangeTracker
from typespec_serializers.config import (
    ConfigurationError,
    GeneratorConfig,
    configure,
    get_config,
    load_config_file,
    reset_config,
)
from typespec_serializers.dsl import (
    Attribute,
    BaseSerializer,
    attribute,
    flat_one,
    has_many,
    has_one,
)
from typespec_serializers.exporters import CachedFileWriter
from typespec_serializers.generator import GenerationReport, TypeSpecGenerator
from typespec_serializers.imports import used_imports
from typespec_serializers.inference import TypeInferenceEngine
from typespec_serializers.models import (
    AttributeDeclaration,
    ColumnInfo,
    Interface,
    ModelReference,
    Property,
    RecordSchema,
    SerializerDefinition,
)
from typespec_serializers.records import (
    EmptyRecordProvider,
    RecordMetadataProvider,
    SQLAlchemyRecordProvider,
    StaticRecordProvider,
)
from typespec_serializers.registry import SerializerRegistry, registry

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Core orchestrator
    "TypeSpecGenerator",
    "GenerationReport",
    # Declarations
    "Attribute",
    "BaseSerializer",
    "attribute",
    "has_one",
    "has_many",
    "flat_one",
    # Configuration
    "ConfigurationError",
    "GeneratorConfig",
    "configure",
    "get_config",
    "load_config_file",
    "reset_config",
    # Models
    "AttributeDeclaration",
    "ColumnInfo",
    "Interface",
    "ModelReference",
    "Property",
    "RecordSchema",
    "SerializerDefinition",
    # Pipeline stages
    "SerializerRegistry",
    "registry",
    "TypeInferenceEngine",
    "used_imports",
    "CachedFileWriter",
    "ChangeSet",
    "ChangeTracker",
    # Record metadata
    "RecordMetadataProvider",
    "EmptyRecordProvider",
    "StaticRecordProvider",
    "SQLAlchemyRecordProvider",
]
