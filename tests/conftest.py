"""公共测试夹具: 包目录 / 压缩包构造、全局状态复位"""

from __future__ import annotations

import io
import tarfile
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from ritual_grove.core.config import reset_config
from ritual_grove.utils.logger import reset_logging


def _write_package(
    directory: Path,
    name: str,
    version: str = "1.0.0",
    *,
    description: str = "",
    author: str = "",
    tags: list[str] | None = None,
    rituals: list[str] | None = None,
    packages: list[str] | None = None,
    compatibility: dict[str, str] | None = None,
    database: dict[str, Any] | None = None,
) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {
        "ritual": {
            "name": name,
            "version": version,
            "description": description,
            "author": author,
            "tags": tags or [],
        },
        "dependencies": {
            "packages": packages or [],
            "rituals": rituals or [],
        },
    }
    if database is not None:
        data["dependencies"]["database"] = database
    if compatibility is not None:
        data["compatibility"] = compatibility
    (directory / "ritual.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")
    return directory


def _make_tarball(path: Path, files: dict[str, bytes]) -> Path:
    """按 {条目名: 内容} 生成 .tar.gz，条目名原样写入（可含 ../）"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tf:
        for member_name, content in files.items():
            info = tarfile.TarInfo(member_name)
            info.size = len(content)
            tf.addfile(info, io.BytesIO(content))
    return path


def manifest_bytes(name: str, version: str = "1.0.0", **meta: Any) -> bytes:
    return yaml.safe_dump({"ritual": {"name": name, "version": version, **meta}}).encode()


@pytest.fixture()
def write_package() -> Callable[..., Path]:
    return _write_package


@pytest.fixture()
def make_tarball() -> Callable[[Path, dict[str, bytes]], Path]:
    return _make_tarball


@pytest.fixture()
def manifest_content() -> Callable[..., bytes]:
    return manifest_bytes


@pytest.fixture(autouse=True)
def _reset_globals():
    yield
    reset_config()
    reset_logging()
