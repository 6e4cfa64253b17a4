"""压缩包解压测试"""

from __future__ import annotations

import io
import tarfile

import pytest

from ritual_grove.core.exceptions import ExtractionError
from ritual_grove.core.manifest import load_manifest
from ritual_grove.core.registry.archive import (
    ArchiveExtractor,
    archive_base_name,
    find_package_root,
    is_archive,
)


class TestNames:
    @pytest.mark.parametrize("name, expected", [
        ("blog.tar.gz", "blog"), ("blog-1.0.tgz", "blog-1.0"), ("blog.zip", "blog.zip"),
    ])
    def test_base_name(self, name, expected) -> None:
        assert archive_base_name(name) == expected

    def test_is_archive(self) -> None:
        assert is_archive("x.tgz")
        assert is_archive("/a/b/x.tar.gz")
        assert not is_archive("x.tar")


class TestExtract:
    def test_flat_archive(self, tmp_path, make_tarball, manifest_content) -> None:
        archive = make_tarball(tmp_path / "blog.tar.gz", {
            "ritual.yaml": manifest_content("blog", "1.0.0"),
            "templates/index.html": b"<html/>",
        })
        root = ArchiveExtractor().extract(archive, tmp_path / "cache")
        assert root == tmp_path / "cache" / "blog"
        assert load_manifest(root).name == "blog"
        assert (root / "templates" / "index.html").read_bytes() == b"<html/>"

    def test_nested_root(self, tmp_path, make_tarball, manifest_content) -> None:
        archive = make_tarball(tmp_path / "wiki-0.3.tgz", {
            "wiki-0.3/ritual.yaml": manifest_content("wiki", "0.3.0"),
        })
        root = ArchiveExtractor().extract(archive, tmp_path / "cache")
        assert root == tmp_path / "cache" / "wiki-0.3" / "wiki-0.3"
        assert load_manifest(root).version == "0.3.0"

    def test_no_manifest_returns_dest(self, tmp_path, make_tarball) -> None:
        archive = make_tarball(tmp_path / "junk.tgz", {"readme.txt": b"hi"})
        root = ArchiveExtractor().extract(archive, tmp_path / "cache")
        assert root == tmp_path / "cache" / "junk"

    def test_traversal_dropped(self, tmp_path, make_tarball, manifest_content) -> None:
        archive = make_tarball(tmp_path / "evil.tar.gz", {
            "ritual.yaml": manifest_content("evil"),
            "../../escape.txt": b"pwned",
            "/abs.txt": b"pwned",
            "sub/../../up.txt": b"pwned",
        })
        cache = tmp_path / "deep" / "cache"
        root = ArchiveExtractor().extract(archive, cache)
        assert (root / "ritual.yaml").is_file()
        assert not (tmp_path / "escape.txt").exists()
        assert not (tmp_path / "deep" / "escape.txt").exists()
        assert not (tmp_path / "deep" / "cache" / "up.txt").exists()
        assert not (tmp_path / "abs.txt").exists()

    def test_symlink_skipped(self, tmp_path, manifest_content) -> None:
        archive = tmp_path / "links.tgz"
        content = manifest_content("links")
        with tarfile.open(archive, "w:gz") as tf:
            info = tarfile.TarInfo("ritual.yaml")
            info.size = len(content)
            tf.addfile(info, io.BytesIO(content))
            link = tarfile.TarInfo("passwd")
            link.type = tarfile.SYMTYPE
            link.linkname = "/etc/passwd"
            tf.addfile(link)
        root = ArchiveExtractor().extract(archive, tmp_path / "cache")
        assert not (root / "passwd").exists()
        assert not (root / "passwd").is_symlink()

    def test_oversized_file_truncated(self, tmp_path, make_tarball, manifest_content) -> None:
        archive = make_tarball(tmp_path / "big.tgz", {
            "ritual.yaml": manifest_content("big"),
            "blob.bin": b"x" * 5000,
        })
        root = ArchiveExtractor(max_file_size=1024).extract(archive, tmp_path / "cache")
        assert (root / "blob.bin").stat().st_size == 1024

    def test_idempotent(self, tmp_path, make_tarball, manifest_content) -> None:
        archive = make_tarball(tmp_path / "blog.tgz", {"ritual.yaml": manifest_content("blog")})
        first = ArchiveExtractor().extract(archive, tmp_path / "cache")
        marker = first / "local-edit.txt"
        marker.write_text("keep", encoding="utf-8")

        archive.unlink()  # 缓存有效时不再读取压缩包
        second = ArchiveExtractor().extract(archive, tmp_path / "cache")
        assert second == first
        assert marker.read_text(encoding="utf-8") == "keep"

    def test_corrupt_archive(self, tmp_path) -> None:
        archive = tmp_path / "bad.tar.gz"
        archive.write_bytes(b"definitely not gzip")
        with pytest.raises(ExtractionError, match="解压失败"):
            ArchiveExtractor().extract(archive, tmp_path / "cache")

    def test_missing_archive(self, tmp_path) -> None:
        with pytest.raises(ExtractionError):
            ArchiveExtractor().extract(tmp_path / "none.tgz", tmp_path / "cache")


class TestFindPackageRoot:
    def test_prefers_root(self, tmp_path, write_package) -> None:
        write_package(tmp_path, "top")
        write_package(tmp_path / "child", "child")
        assert find_package_root(tmp_path) == tmp_path

    def test_missing_dir(self, tmp_path) -> None:
        assert find_package_root(tmp_path / "nope") is None
