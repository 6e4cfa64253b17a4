"""包清单加载测试"""

from __future__ import annotations

import pytest

from ritual_grove.core.exceptions import ManifestError
from ritual_grove.core.manifest import (
    DEFAULT_TEMPLATE_ENGINE,
    MANIFEST_FILE,
    has_manifest,
    is_loadable,
    load_manifest,
    load_manifest_bytes,
    parse_manifest,
)


class TestParseManifest:
    def test_full(self) -> None:
        m = parse_manifest({
            "ritual": {
                "name": "blog", "version": "1.0.0", "description": "d",
                "author": "me", "tags": ["web", "cms"],
            },
            "compatibility": {"min_touta_version": "0.1.0", "max_touta_version": "2.0.0"},
            "dependencies": {
                "packages": ["p"], "rituals": ["auth"],
                "database": {"required": True, "types": ["postgres"], "min_version": "13"},
            },
            "questions": [{"name": "title"}],
            "files": {"templates": []},
        })
        assert m.name == "blog"
        assert m.version == "1.0.0"
        assert m.ritual.tags == ["web", "cms"]
        assert m.ritual.template_engine == DEFAULT_TEMPLATE_ENGINE
        assert m.compatibility.min_tool_version == "0.1.0"
        assert m.compatibility.max_tool_version == "2.0.0"
        assert m.dependencies.rituals == ["auth"]
        assert m.dependencies.database.types == ["postgres"]
        assert m.questions == [{"name": "title"}]

    def test_minimal(self) -> None:
        m = parse_manifest({"ritual": {"name": "x", "version": "0.1.0"}})
        assert m.compatibility is None
        assert m.dependencies.database is None
        assert m.dependencies.rituals == []

    @pytest.mark.parametrize("data, match", [
        ({}, "name"),
        ({"ritual": {"name": "x"}}, "version"),
        ({"ritual": "oops"}, "映射"),
        ({"ritual": {"name": "x", "version": "1.0.0", "tags": "web"}}, "列表"),
        ({"ritual": {"name": "x", "version": "1.0.0"}, "files": ["a", "b"]}, "files"),
        ({"ritual": {"name": "x", "version": "1.0.0"}, "files": 5}, "files"),
        ({"ritual": {"name": "x", "version": "1.0.0"}, "questions": 5}, "questions"),
        ({"ritual": {"name": "x", "version": "1.0.0"}, "questions": ["title"]}, "questions"),
    ])
    def test_invalid(self, data, match) -> None:
        with pytest.raises(ManifestError, match=match):
            parse_manifest(data)

    def test_from_bytes(self, manifest_content) -> None:
        m = load_manifest_bytes(manifest_content("emb", "2.0.0"), source="embedded:emb")
        assert m.version == "2.0.0"

    def test_from_bytes_bad_yaml(self) -> None:
        with pytest.raises(ManifestError, match="解析"):
            load_manifest_bytes(b"ritual: [unclosed", source="x")


class TestLoadManifest:
    def test_load(self, tmp_path, write_package) -> None:
        write_package(tmp_path / "pkg", "pkg", "1.2.3")
        assert load_manifest(tmp_path / "pkg").version == "1.2.3"
        assert has_manifest(tmp_path / "pkg")
        assert is_loadable(tmp_path / "pkg")

    def test_missing(self, tmp_path) -> None:
        with pytest.raises(ManifestError, match=MANIFEST_FILE):
            load_manifest(tmp_path)
        assert not has_manifest(tmp_path)
        assert not is_loadable(tmp_path)

    def test_present_but_broken(self, tmp_path) -> None:
        (tmp_path / MANIFEST_FILE).write_text("ritual:\n  name: [", encoding="utf-8")
        assert has_manifest(tmp_path)
        assert not is_loadable(tmp_path)
