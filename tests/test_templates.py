"""
tests/test_templates.py
Unit tests for typespec_serializers.templates (file bodies).
"""

from __future__ import annotations

from typespec_serializers.models import Interface, Property
from typespec_serializers.templates import (
    BANNER,
    index_file_content,
    model_file_content,
)

SONG = Interface(
    name="Song",
    filename="Song",
    properties=[Property(name="id", type="int32"), Property(name="url", type="Url", optional=True)],
)


class TestModelFile:
    def test_standard_file_with_imports(self) -> None:
        content = model_file_content(SONG, ['import "../Url.tsp";'])
        assert content == (
            "//\n"
            "// DO NOT MODIFY: This file was automatically generated by TypeSpecSerializers.\n"
            'import "../Url.tsp";\n'
            "\n"
            "model Song {\n"
            "  id: int32;\n"
            "  url?: Url;\n"
            "}\n"
        )

    def test_standard_file_without_imports(self) -> None:
        content = model_file_content(SONG, [])
        assert content.startswith(f"{BANNER}\n\nmodel Song {{\n")

    def test_namespaced_file_without_imports_exports_nothing(self) -> None:
        content = model_file_content(SONG, [], namespace="Schema")
        assert content == (
            "//\n"
            "// DO NOT MODIFY: This file was automatically generated by TypeSpecSerializers.\n"
            "export {}\n"
            "\n"
            "namespace Schema {\n"
            "  model Song {\n"
            "    id: int32;\n"
            "    url?: Url;\n"
            "  }\n"
            "}\n"
        )

    def test_namespaced_file_with_imports(self) -> None:
        content = model_file_content(SONG, ['import "../Url.tsp";'], namespace="Schema")
        assert 'import "../Url.tsp";\n\nnamespace Schema {' in content
        assert "export {}" not in content


class TestIndexFile:
    def test_one_import_per_model(self) -> None:
        assert index_file_content(["Composer", "Nested/Album"]) == (
            f"{BANNER}\n"
            'import "./Composer.tsp";\n'
            'import "./Nested/Album.tsp";\n'
        )

    def test_empty_index(self) -> None:
        assert index_file_content([]) == f"{BANNER}\n"
