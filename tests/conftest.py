"""
tests/conftest.py
Shared fixtures for the typespec_serializers test suite.

No external mocking libraries are used; serializer source files are written
to disk inside temporary project trees managed by pytest's tmp_path fixture,
and generated files are read back from there.
"""

from __future__ import annotations

import pathlib
import textwrap
from types import ModuleType
from typing import Callable, Dict, Iterator

import pytest
import yaml

from typespec_serializers.config import GeneratorConfig, reset_config
from typespec_serializers.models import RecordSchema
from typespec_serializers.records import StaticRecordProvider
from typespec_serializers.registry import registry

WriteSerializer = Callable[[str, str], pathlib.Path]


# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Every test starts with an empty registry and the default configuration."""
    monkeypatch.delenv("TYPESPEC_SERIALIZERS_FORCE", raising=False)
    registry.clear()
    reset_config()
    yield
    registry.clear()
    reset_config()


# ---------------------------------------------------------------------------
# Project tree
# ---------------------------------------------------------------------------


@pytest.fixture()
def project_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """A project with an empty ``app/serializers`` directory."""
    (tmp_path / "app" / "serializers").mkdir(parents=True)
    return tmp_path


@pytest.fixture()
def serializers_dir(project_root: pathlib.Path) -> pathlib.Path:
    return project_root / "app" / "serializers"


@pytest.fixture()
def output_dir(project_root: pathlib.Path) -> pathlib.Path:
    return project_root / "app" / "frontend" / "typespec" / "serializers"


@pytest.fixture()
def config(project_root: pathlib.Path) -> GeneratorConfig:
    """The process-wide configuration, rooted at the temporary project."""
    return reset_config(root=project_root)


@pytest.fixture()
def write_serializer(serializers_dir: pathlib.Path) -> WriteSerializer:
    """Write ``app/serializers/<relative>.py`` from dedented source."""

    def _write(relative: str, source: str) -> pathlib.Path:
        path = serializers_dir / f"{relative}.py"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Record metadata
# ---------------------------------------------------------------------------


@pytest.fixture()
def music_records_data() -> Dict[str, Dict]:
    return {
        "Composer": {
            "columns": [
                {"name": "id", "sql_type": "integer", "nullable": False},
                {"name": "first_name", "sql_type": "string"},
                {"name": "last_name", "sql_type": "string", "nullable": False},
                {"name": "born_on", "sql_type": "date", "has_default": True},
            ],
        },
        "Song": {
            "columns": [
                {"name": "id", "sql_type": "integer", "nullable": False},
                {"name": "title", "sql_type": "text"},
                {"name": "genre", "sql_type": "string"},
                {"name": "tempo", "sql_type": "integer", "nullable": False},
                {"name": "tags", "sql_type": "citext", "array": True, "nullable": False},
                {"name": "composer_id", "sql_type": "bigint", "nullable": False},
                {"name": "duration", "sql_type": "interval", "nullable": False},
            ],
            "enums": {"genre": ["classical", "jazz", "rock"]},
        },
    }


@pytest.fixture()
def music_records(music_records_data: Dict[str, Dict]) -> StaticRecordProvider:
    return StaticRecordProvider(music_records_data)


@pytest.fixture()
def music_records_file(
    music_records_data: Dict[str, Dict], project_root: pathlib.Path
) -> pathlib.Path:
    path = project_root / "records.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(music_records_data, fh, default_flow_style=False)
    return path


@pytest.fixture()
def song_schema() -> RecordSchema:
    return RecordSchema(
        name="Song",
        columns=[{"name": "title", "sql_type": "text"}],
        enums={"genre": ["classical", "jazz"]},
    )


# ---------------------------------------------------------------------------
# Serializer sources
# ---------------------------------------------------------------------------


@pytest.fixture()
def music_serializers(write_serializer: WriteSerializer) -> Dict[str, pathlib.Path]:
    """A small application: composers, songs, an inline serializer and a namespace."""
    return {
        "composer": write_serializer(
            "composer",
            """
            from typespec_serializers import BaseSerializer, attribute

            class ComposerSerializer(BaseSerializer, model="Composer"):
                id = attribute()
                first_name = attribute()
                last_name = attribute()
            """,
        ),
        "song": write_serializer(
            "song",
            """
            from typespec_serializers import BaseSerializer, attribute, has_one

            class SongSerializer(BaseSerializer, object_as="song"):
                id = attribute()
                title = attribute()
                genre = attribute()
                tags = attribute()
                composer = has_one("ComposerSerializer")
                url = attribute("Url", condition="published")
            """,
        ),
        "composer_with_songs": write_serializer(
            "composer_with_songs",
            """
            from typespec_serializers import BaseSerializer, attribute, has_many

            class ComposerWithSongsSerializer(BaseSerializer, model="Composer"):
                class SongSerializer(BaseSerializer, model="Song"):
                    id = attribute()
                    title = attribute()

                id = attribute()
                name = attribute("string")
                songs = has_many(SongSerializer)
            """,
        ),
        "nested/album": write_serializer(
            "nested/album",
            """
            from typespec_serializers import BaseSerializer, attribute, has_many

            class AlbumSerializer(BaseSerializer):
                name = attribute("string")
                tracks = has_many("SongSerializer")
                total = attribute("float64", optional=True)
            """,
        ),
    }


@pytest.fixture()
def load_source(write_serializer: WriteSerializer) -> Callable[[str, str], ModuleType]:
    """Write a serializer file and load it into the registry."""

    def _load(relative: str, source: str) -> ModuleType:
        return registry.load_file(write_serializer(relative, source))

    return _load
