"""更新检查测试"""

from __future__ import annotations

import logging

import pytest

from ritual_grove.core.exceptions import PackageNotFoundError, VersionParseError
from ritual_grove.core.registry import Registry, UpdateChecker


@pytest.fixture()
def checker(tmp_path, write_package):
    loc = tmp_path / "search"
    write_package(loc / "a", "a", "2.0.0")
    write_package(loc / "b", "b", "1.0.0")
    (loc / "a" / "CHANGELOG.md").write_text("## 2.0.0\n- rewrite\n", encoding="utf-8")
    reg = Registry(cache_dir=tmp_path / "cache", search_paths=[loc], include_embedded=False)
    reg.scan()
    return UpdateChecker(reg)


class TestCheckForUpdates:
    def test_newer_available(self, checker) -> None:
        info = checker.check_for_updates("a", "1.0.0")
        assert info.is_update_needed is True
        assert info.latest_version == "2.0.0"
        assert info.current_version == "1.0.0"
        assert info.changelog == ""

    def test_up_to_date(self, checker) -> None:
        assert checker.check_for_updates("a", "2.0.0").is_update_needed is False
        assert checker.check_for_updates("a", "3.0.0").is_update_needed is False

    def test_unknown_package(self, checker) -> None:
        with pytest.raises(PackageNotFoundError):
            checker.check_for_updates("zzz", "1.0.0")

    def test_bad_installed_version(self, checker) -> None:
        with pytest.raises(VersionParseError):
            checker.check_for_updates("a", "one")


class TestCheckAll:
    def test_only_needed_updates(self, checker) -> None:
        updates = checker.check_all_updates({"a": "1.0.0"})
        assert len(updates) == 1
        assert updates[0].is_update_needed
        assert updates[0].latest_version == "2.0.0"
        assert checker.check_all_updates({"a": "2.0.0"}) == []

    def test_unknown_names_skipped(self, checker) -> None:
        updates = checker.check_all_updates({"ghost": "0.1.0", "a": "1.0.0", "b": "1.0.0"})
        assert [u.name for u in updates] == ["a"]

    def test_bad_version_isolated(self, checker, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            updates = checker.check_all_updates({"a": "1.0", "b": "0.9.0"})
        assert [u.name for u in updates] == ["b"]
        assert "1.0" in caplog.text

    def test_bad_registry_version_isolated(self, checker) -> None:
        checker.registry.get("a").version = "latest"
        updates = checker.check_all_updates({"a": "1.0.0", "b": "0.9.0"})
        assert [u.name for u in updates] == ["b"]

    def test_with_changelog(self, checker) -> None:
        updates = checker.check_all_updates({"a": "1.0.0"}, with_changelog=True)
        assert "rewrite" in updates[0].changelog

    def test_notifications(self, checker) -> None:
        notes = checker.notifications({"a": "1.0.0", "b": "1.0.0"})
        assert [(n.name, n.message) for n in notes] == [
            ("a", "Update available for a: 1.0.0 -> 2.0.0"),
        ]


class TestChangelog:
    def test_file_present(self, checker) -> None:
        assert checker.changelog("a", "1.0.0", "2.0.0").startswith("## 2.0.0")

    def test_placeholder(self, checker) -> None:
        assert checker.changelog("b", "0.9.0", "1.0.0") == (
            "Version 0.9.0 -> 1.0.0\n\nNo changelog available."
        )
