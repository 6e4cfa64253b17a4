"""候选发现与默认搜索路径测试"""

from __future__ import annotations

from ritual_grove.core.config import Config
from ritual_grove.core.registry.discovery import default_search_paths, discover, discover_location
from ritual_grove.core.registry.models import GitSpec, SourceKind


class TestDefaultSearchPaths:
    def test_priority_order(self, tmp_path) -> None:
        override = tmp_path / "override"
        override.mkdir()
        exe = tmp_path / "bin"
        (exe / "rituals").mkdir(parents=True)
        cwd, home = tmp_path / "proj", tmp_path / "home"

        paths = default_search_paths(
            Config(search_paths=[str(tmp_path / "extra")]),
            cwd=cwd, home=home, executable_dir=exe,
            environ={"RITUAL_GROVE_PATH": str(override)},
        )
        assert paths == [
            override,
            exe / "rituals",
            cwd / ".rituals",
            cwd / "rituals",
            home / ".ritual-grove" / "rituals",
            tmp_path / "extra",
        ]

    def test_absent_optional_locations_skipped(self, tmp_path) -> None:
        paths = default_search_paths(
            Config(), cwd=tmp_path, home=tmp_path / "h", executable_dir=tmp_path / "nobin",
            environ={"RITUAL_GROVE_PATH": str(tmp_path / "missing")},
        )
        assert paths == [
            tmp_path / ".rituals",
            tmp_path / "rituals",
            tmp_path / "h" / ".ritual-grove" / "rituals",
        ]

    def test_custom_env_var_and_dedupe(self, tmp_path) -> None:
        cfg = Config(path_env_var="MY_RITUALS", search_paths=[str(tmp_path / "rituals")])
        paths = default_search_paths(
            cfg, cwd=tmp_path, home=tmp_path, executable_dir=None,
            environ={"MY_RITUALS": str(tmp_path)},
        )
        assert paths[0] == tmp_path
        assert paths.count(tmp_path / "rituals") == 1

    def test_defaults_disabled(self, tmp_path) -> None:
        cfg = Config(use_default_search_paths=False, search_paths=[str(tmp_path)])
        assert default_search_paths(cfg, environ={}) == [tmp_path]


class TestDiscover:
    def test_location(self, tmp_path, write_package, make_tarball, manifest_content) -> None:
        write_package(tmp_path / "b-pkg", "b")
        write_package(tmp_path / "a-pkg", "a")
        (tmp_path / "no-manifest").mkdir()
        make_tarball(tmp_path / "c.tgz", {"ritual.yaml": manifest_content("c")})
        (tmp_path / "notes.txt").write_text("", encoding="utf-8")

        found = discover_location(tmp_path)
        assert [(c.kind, c.location) for c in found] == [
            (SourceKind.LOCAL, str(tmp_path / "a-pkg")),
            (SourceKind.LOCAL, str(tmp_path / "b-pkg")),
            (SourceKind.TARBALL, str(tmp_path / "c.tgz")),
        ]

    def test_missing_location(self, tmp_path) -> None:
        assert discover_location(tmp_path / "nope") == []

    def test_order_and_purity(self, tmp_path, write_package, make_tarball, manifest_content) -> None:
        loc = tmp_path / "loc"
        write_package(loc / "p", "p")
        make_tarball(loc / "q.tgz", {"ritual.yaml": manifest_content("q")})
        before = sorted(str(p) for p in tmp_path.rglob("*"))

        spec = GitSpec(url="https://example.com/r.git")
        found = discover([loc], embedded=["blog"], git=[spec])
        assert [c.kind for c in found] == [
            SourceKind.EMBEDDED, SourceKind.LOCAL, SourceKind.TARBALL, SourceKind.VCS,
        ]
        assert found[-1].git == spec
        assert sorted(str(p) for p in tmp_path.rglob("*")) == before
