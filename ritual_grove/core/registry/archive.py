"""压缩包安全解压

职责:
- 把 .tar.gz / .tgz 解压到 {cache_root}/<包文件基名>/
- 路径穿越防护: 解压目标必须在字面上位于目标根目录之内，越界条目直接丢弃
- 解压炸弹防护: 单文件写入上限 MAX_FILE_SIZE，超出部分截断
- 幂等: 目标目录已有可加载清单时直接复用，不再读取压缩包
- 嵌套根目录: 根部没有清单时在一级子目录中查找

只解出普通文件和目录，符号链接 / 硬链接 / 设备文件一律跳过。
失败时不回滚已解出的部分。
"""

from __future__ import annotations

import logging
import os
import tarfile
import zlib
from pathlib import Path
from typing import Callable

from ritual_grove.core.exceptions import ExtractionError
from ritual_grove.core.manifest import has_manifest, is_loadable
from ritual_grove.core.registry.models import ARCHIVE_SUFFIXES

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 100 * 1024 * 1024
_CHUNK_SIZE = 64 * 1024


def is_archive(path: str | Path) -> bool:
    return Path(path).name.endswith(ARCHIVE_SUFFIXES)


def archive_base_name(path: str | Path) -> str:
    """去掉 .tar.gz / .tgz 后缀的文件名"""
    name = Path(path).name
    for suffix in ARCHIVE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def find_package_root(
    root: Path, check: Callable[[Path], bool] = has_manifest,
) -> Path | None:
    """根目录或其一级子目录中第一个满足 check 的目录"""
    if not root.is_dir():
        return None
    if check(root):
        return root
    for child in sorted(root.iterdir()):
        if child.is_dir() and check(child):
            return child
    return None


class ArchiveExtractor:
    """压缩包解压器"""

    def __init__(self, max_file_size: int = MAX_FILE_SIZE) -> None:
        self.max_file_size = max_file_size

    @staticmethod
    def target_dir(archive: str | Path, dest_root: str | Path) -> Path:
        return Path(dest_root) / archive_base_name(archive)

    def extract(self, archive: str | Path, dest_root: str | Path) -> Path:
        """解压并返回包根目录

        异常:
            ExtractionError: 压缩包无法读取 / 已损坏，或目录无法创建
        """
        archive = Path(archive)
        dest = self.target_dir(archive, dest_root)

        cached = find_package_root(dest, is_loadable)
        if cached is not None:
            logger.debug("缓存命中，跳过解压: %s -> %s", archive.name, cached)
            return cached

        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExtractionError(f"无法创建解压目录 {dest}: {e}") from e

        written = dropped = 0
        try:
            with tarfile.open(archive, "r:gz") as tf:
                for member in tf:
                    if self._extract_member(tf, member, dest):
                        written += 1
                    else:
                        dropped += 1
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            raise ExtractionError(f"解压失败 {archive}: {e}") from e

        logger.info("已解压 %s -> %s (%d 条, 跳过 %d 条)", archive.name, dest, written, dropped)
        return find_package_root(dest) or dest

    def _extract_member(self, tf: tarfile.TarFile, member: tarfile.TarInfo, dest: Path) -> bool:
        """解出单个条目，返回是否写入"""
        target = _safe_target(dest, member.name)
        if target is None:
            logger.warning("丢弃越界条目: %s", member.name)
            return False

        if member.isdir():
            os.makedirs(target, exist_ok=True)
            return True
        if not member.isfile():
            logger.debug("跳过非普通文件条目: %s", member.name)
            return False

        if os.path.isdir(target):
            logger.debug("条目与已有目录同名，跳过: %s", member.name)
            return False
        os.makedirs(os.path.dirname(target), exist_ok=True)
        src = tf.extractfile(member)
        if src is None:
            return False
        remaining = self.max_file_size
        with src, open(target, "wb") as out:
            while remaining > 0:
                chunk = src.read(min(_CHUNK_SIZE, remaining))
                if not chunk:
                    break
                out.write(chunk)
                remaining -= len(chunk)
        if member.size > self.max_file_size:
            logger.warning(
                "条目超过单文件上限，已截断: %s (%d > %d 字节)",
                member.name, member.size, self.max_file_size,
            )
        return True


def _safe_target(dest: Path, member_name: str) -> str | None:
    """计算条目的落盘路径，越出 dest 时返回 None（纯字面判断，不解析符号链接）"""
    root = os.path.normpath(os.path.abspath(dest))
    target = os.path.normpath(os.path.join(root, member_name))
    if os.path.commonpath([root, target]) != root:
        return None
    return target
