"""
tests/test_inference.py
Unit tests for typespec_serializers.inference (TypeInferenceEngine).

Tests cover:
- Precedence: explicit type > enum > column > typespec_from > unknown
- Nullability, defaults and array columns
- Associations (one / many / flat) and flat cycles
- Key transforms and property sorting
- Memoization tagged with the config revision
"""

from __future__ import annotations

from types import ModuleType
from typing import Any, Callable, List

import pytest

from typespec_serializers.config import ConfigurationError, GeneratorConfig
from typespec_serializers.inference import TypeInferenceEngine, enum_union
from typespec_serializers.models import (
    AttributeDeclaration,
    Interface,
    ModelReference,
    SerializerDefinition,
)
from typespec_serializers.records import StaticRecordProvider
from typespec_serializers.registry import registry

LoadSource = Callable[[str, str], ModuleType]


# ===========================================================================
# Helpers
# ===========================================================================


def _attr(name: str, **options: Any) -> AttributeDeclaration:
    options.setdefault("key", name)
    options.setdefault("value_from", name)
    return AttributeDeclaration(name=name, **options)


def _definition(name: str, attributes: List[AttributeDeclaration], **options: Any) -> SerializerDefinition:
    return SerializerDefinition(name=name, module="app.serializers", attributes=attributes, **options)


def _rendered(interface: Interface) -> List[str]:
    return [p.as_typespec() for p in interface.properties]


@pytest.fixture()
def engine(config: GeneratorConfig, music_records: StaticRecordProvider) -> TypeInferenceEngine:
    return TypeInferenceEngine(config, registry, music_records)


# ===========================================================================
# Tests
# ===========================================================================


class TestPrecedence:
    def test_explicit_type_wins_over_column(self, engine: TypeInferenceEngine) -> None:
        definition = _definition("SongSerializer", [_attr("title", type="Url")], model_name="Song")
        assert _rendered(engine.interface_for(definition)) == ["title: Url;"]

    def test_enum_wins_over_column(self, engine: TypeInferenceEngine) -> None:
        definition = _definition("SongSerializer", [_attr("genre")], model_name="Song")
        assert _rendered(engine.interface_for(definition)) == [
            'genre: "classical" | "jazz" | "rock";'
        ]

    def test_column_metadata(self, engine: TypeInferenceEngine) -> None:
        definition = _definition(
            "ComposerSerializer",
            [_attr("id"), _attr("first_name"), _attr("last_name"), _attr("born_on")],
            model_name="Composer",
        )
        assert _rendered(engine.interface_for(definition)) == [
            "bornOn: plainDate;",
            "firstName?: string;",
            "id: int32;",
            "lastName: string;",
        ]

    def test_array_column_sets_multi(self, engine: TypeInferenceEngine) -> None:
        definition = _definition("SongSerializer", [_attr("tags")], model_name="Song")
        assert _rendered(engine.interface_for(definition)) == ["tags: string[];"]

    def test_value_from_selects_column(self, engine: TypeInferenceEngine) -> None:
        definition = _definition(
            "SongSerializer", [_attr("composer", value_from="composer_id")], model_name="Song"
        )
        assert _rendered(engine.interface_for(definition)) == ["composer: int64;"]

    def test_typespec_from_hint(self, engine: TypeInferenceEngine) -> None:
        definition = _definition(
            "ModelSerializer",
            [_attr("id"), _attr("title")],
            model_name="Model",
            typespec_from="AnyModel",
        )
        assert _rendered(engine.interface_for(definition)) == [
            "id: AnyModel.id::type;",
            "title: AnyModel.title::type;",
        ]

    def test_unresolved_is_unknown(self, engine: TypeInferenceEngine) -> None:
        definition = _definition("MysterySerializer", [_attr("clue")])
        assert _rendered(engine.interface_for(definition)) == ["clue: unknown;"]

    def test_unmapped_column_type_uses_default(
        self, engine: TypeInferenceEngine, config: GeneratorConfig
    ) -> None:
        definition = _definition("SongSerializer", [_attr("duration")], model_name="Song")
        assert _rendered(engine.interface_for(definition)) == ["duration: unknown;"]

        config.reconfigure(sql_type_default="string")
        assert _rendered(engine.interface_for(definition)) == ["duration: string;"]

    def test_example_from_documentation(self, config: GeneratorConfig) -> None:
        records = StaticRecordProvider(
            {"Person": {"columns": [{"name": "name", "sql_type": "string"}]}}
        )
        engine = TypeInferenceEngine(config, registry, records)
        definition = _definition(
            "PersonSerializer", [_attr("id", type="int32"), _attr("name")], model_name="Person"
        )
        assert engine.interface_for(definition).as_typespec() == (
            "model Person {\n  id: int32;\n  name?: string;\n}"
        )


class TestFlags:
    def test_conditional_forces_optional(self, engine: TypeInferenceEngine) -> None:
        definition = _definition("SongSerializer", [_attr("id", conditional=True)], model_name="Song")
        assert _rendered(engine.interface_for(definition)) == ["id?: int32;"]

    def test_enum_keeps_flags(self, engine: TypeInferenceEngine) -> None:
        definition = _definition("SongSerializer", [_attr("genre", optional=True)], model_name="Song")
        assert _rendered(engine.interface_for(definition))[0].startswith("genre?: ")

    def test_enum_union_helper(self) -> None:
        assert enum_union(["a", "b"]) == '"a" | "b"'


class TestAssociations:
    def test_has_one_and_has_many_reference_models(
        self, engine: TypeInferenceEngine, load_source: LoadSource
    ) -> None:
        module = load_source(
            "associations",
            """
            from typespec_serializers import BaseSerializer, attribute, has_many, has_one

            class SongSerializer(BaseSerializer):
                id = attribute("int32")

            class ComposerWithSongsSerializer(BaseSerializer):
                class SongSerializer(BaseSerializer):
                    title = attribute("string")

                songs = has_many("SongSerializer")

            class AlbumSerializer(BaseSerializer):
                favorite = has_one("SongSerializer")
            """,
        )
        composer = engine.interface_for(registry.definition_for(module.ComposerWithSongsSerializer))
        album = engine.interface_for(registry.definition_for(module.AlbumSerializer))

        (songs,) = composer.properties
        assert songs.type == ModelReference(
            name="ComposerWithSongsSong", filename="ComposerWithSongs/Song"
        )
        assert songs.multi is True
        assert _rendered(composer) == ["songs: ComposerWithSongsSong[];"]
        assert album.properties[0].type == ModelReference(name="Song", filename="Song")
        assert _rendered(album) == ["favorite: Song;"]

    def test_class_reference_to_nested_serializer(
        self, engine: TypeInferenceEngine, load_source: LoadSource
    ) -> None:
        module = load_source(
            "inline",
            """
            from typespec_serializers import BaseSerializer, attribute, has_one

            class VideoSerializer(BaseSerializer):
                class ClipSerializer(BaseSerializer):
                    id = attribute("int32")

                clip = has_one(ClipSerializer)
            """,
        )
        interface = engine.interface_for(registry.definition_for(module.VideoSerializer))
        assert _rendered(interface) == ["clip: VideoClip;"]

    def test_unknown_serializer_name(
        self, engine: TypeInferenceEngine, load_source: LoadSource
    ) -> None:
        module = load_source(
            "typo",
            """
            from typespec_serializers import BaseSerializer, has_one

            class SongSerializer(BaseSerializer):
                composer = has_one("CompserSerializer")
            """,
        )
        with pytest.raises(ConfigurationError, match="'CompserSerializer' used by 'composer'"):
            engine.interface_for(registry.definition_for(module.SongSerializer))

    def test_flat_association_splices_properties(
        self, config: GeneratorConfig, music_records: StaticRecordProvider, load_source: LoadSource
    ) -> None:
        module = load_source(
            "flat",
            """
            from typespec_serializers import BaseSerializer, attribute, flat_one

            class TempoSerializer(BaseSerializer, model="Song"):
                tempo = attribute()
                title = attribute("string")

            class SongSerializer(BaseSerializer, model="Song"):
                id = attribute()
                title = attribute()
                info = flat_one("TempoSerializer")
            """,
        )
        engine = TypeInferenceEngine(config, registry, music_records)
        definition = registry.definition_for(module.SongSerializer)

        assert _rendered(engine.interface_for(definition)) == [
            "id: int32;",
            "tempo: int32;",
            "title: string;",
        ]

    def test_flat_cycle_is_skipped(
        self, config: GeneratorConfig, load_source: LoadSource, caplog: pytest.LogCaptureFixture
    ) -> None:
        module = load_source(
            "cycle",
            """
            from typespec_serializers import BaseSerializer, attribute, flat_one

            class ASerializer(BaseSerializer):
                a = attribute("string")
                b = flat_one("BSerializer")

            class BSerializer(BaseSerializer):
                b = attribute("int32")
                a = flat_one("ASerializer")
            """,
        )
        engine = TypeInferenceEngine(config, registry)

        with caplog.at_level("WARNING", logger="typespec_serializers.inference"):
            interface = engine.interface_for(registry.definition_for(module.ASerializer))

        assert _rendered(interface) == ["a: string;", "b: int32;"]
        assert "already being flattened" in caplog.text


class TestKeysAndSorting:
    def test_config_transform_overrides_serializer_transform(
        self, engine: TypeInferenceEngine, config: GeneratorConfig
    ) -> None:
        definition = _definition("ComposerSerializer", [_attr("first_name")], transform_keys=str.upper)
        assert _rendered(engine.interface_for(definition)) == ["FIRST_NAME: unknown;"]

        config.reconfigure(transform_keys=str)
        assert _rendered(engine.interface_for(definition)) == ["first_name: unknown;"]

    def test_trailing_question_mark_is_dropped(self, engine: TypeInferenceEngine) -> None:
        definition = _definition("SongSerializer", [_attr("published?", type="boolean")])
        assert _rendered(engine.interface_for(definition)) == ["published: boolean;"]

    def test_declaration_order_when_sorting_disabled(
        self, engine: TypeInferenceEngine, config: GeneratorConfig
    ) -> None:
        config.reconfigure(sort_properties_by=None)
        definition = _definition("SongSerializer", [_attr("title"), _attr("id")], model_name="Song")
        assert [p.name for p in engine.interface_for(definition).properties] == ["title", "id"]

    def test_callable_sort_key(self, engine: TypeInferenceEngine, config: GeneratorConfig) -> None:
        config.reconfigure(sort_properties_by=lambda prop: (prop.optional, prop.name))
        definition = _definition(
            "SongSerializer", [_attr("title"), _attr("tempo"), _attr("id")], model_name="Song"
        )
        assert [p.name for p in engine.interface_for(definition).properties] == ["id", "tempo", "title"]

    def test_duplicate_keys_keep_last_declaration(self, engine: TypeInferenceEngine) -> None:
        definition = _definition(
            "SongSerializer",
            [_attr("name", type="string"), _attr("title", key="name", type="int32")],
        )
        assert _rendered(engine.interface_for(definition)) == ["name: int32;"]


class TestMemoization:
    def test_interface_is_memoized(self, engine: TypeInferenceEngine) -> None:
        definition = _definition("SongSerializer", [_attr("id")], model_name="Song")
        assert engine.interface_for(definition) is engine.interface_for(definition)

    def test_reconfigure_rebuilds(self, engine: TypeInferenceEngine, config: GeneratorConfig) -> None:
        definition = _definition("SongSerializer", [_attr("id")], model_name="Song")
        first = engine.interface_for(definition)
        config.reconfigure(name_from_serializer=lambda name: f"Api{name}")
        second = engine.interface_for(definition)

        assert second is not first
        assert second.name == "ApiSongSerializer"
