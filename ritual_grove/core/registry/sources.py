"""包来源适配器 - Local / Embedded / Tarball / Git

每种 SourceKind 对应一个适配器，负责把 Candidate 落盘并返回本地目录:
- LocalSource:    包已在磁盘上，原样返回
- EmbeddedSource: 随工具分发的内嵌包，版本变化时重新复制到 {cache}/embedded/<name>
- TarballSource:  经 ArchiveExtractor 解压到 {cache}/<包文件基名>
- GitSource:      clone / 更新到 {cache}/vcs/<净化后的 URL>，支持单仓多包
"""

from __future__ import annotations

import logging
import re
import shutil
from abc import ABC, abstractmethod
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path

from ritual_grove.core.exceptions import CacheError, FetchError, ManifestError, ValidationError
from ritual_grove.core.manifest import MANIFEST_FILE, has_manifest, load_manifest, load_manifest_bytes
from ritual_grove.core.registry.archive import ArchiveExtractor
from ritual_grove.core.registry.models import Candidate, GitSpec, SourceKind
from ritual_grove.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)

EMBEDDED_DIR = "embedded"
VCS_DIR = "vcs"

_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@\-]+$")
_URL_PREFIXES = ("https://", "http://", "ssh://", "git://", "git@")
_VCS_METADATA_DIRS = frozenset((".git", ".hg", ".svn"))


class Source(ABC):
    """来源适配器基类"""

    kind: SourceKind

    @abstractmethod
    def materialize(self, candidate: Candidate) -> Path:
        """把候选落到本地磁盘，返回其目录"""

    def package_roots(self, path: Path) -> list[Path]:
        """落盘目录中的包根目录列表，默认即目录本身"""
        return [path]


class LocalSource(Source):
    kind = SourceKind.LOCAL

    def materialize(self, candidate: Candidate) -> Path:
        return Path(candidate.location)


class EmbeddedSource(Source):
    """内嵌包来源

    bundle 为内嵌包根目录（默认是本包自带的 rituals/ 数据目录），
    每个一级子目录是一个包。缓存中的清单版本与内嵌版本不一致、
    缓存缺失或无法加载时，删除缓存并逐文件重新复制。
    """

    kind = SourceKind.EMBEDDED

    def __init__(self, cache_root: Path, bundle: Traversable | None = None) -> None:
        self.cache_root = Path(cache_root)
        self.bundle = bundle if bundle is not None else resources.files("ritual_grove") / "rituals"

    @property
    def cache_dir(self) -> Path:
        return self.cache_root / EMBEDDED_DIR

    def names(self) -> list[str]:
        """带清单的内嵌包名"""
        if not self.bundle.is_dir():
            return []
        return sorted(
            child.name for child in self.bundle.iterdir()
            if child.is_dir() and child.joinpath(MANIFEST_FILE).is_file()
        )

    def has(self, name: str) -> bool:
        return self.bundle.joinpath(name, MANIFEST_FILE).is_file()

    def materialize(self, candidate: Candidate) -> Path:
        name = candidate.location
        src = self.bundle.joinpath(name)
        dest = self.cache_dir / name

        manifest_file = src.joinpath(MANIFEST_FILE)
        embedded = load_manifest_bytes(manifest_file.read_bytes(), source=f"embedded:{name}")

        try:
            cached_version = load_manifest(dest).version
        except ManifestError:
            cached_version = None
        if cached_version == embedded.version:
            return dest

        logger.info(
            "刷新内嵌包缓存: %s (%s -> %s)", name, cached_version or "无", embedded.version,
        )
        try:
            if dest.exists():
                shutil.rmtree(dest)
            _copy_tree(src, dest)
        except OSError as e:
            raise CacheError(f"复制内嵌包失败 {name}: {e}") from e
        return dest


def _copy_tree(src: Traversable, dest: Path) -> None:
    """逐文件复制，保留目录结构"""
    dest.mkdir(parents=True, exist_ok=True)
    for child in src.iterdir():
        target = dest / child.name
        if child.is_dir():
            _copy_tree(child, target)
        else:
            target.write_bytes(child.read_bytes())


class TarballSource(Source):
    kind = SourceKind.TARBALL

    def __init__(self, cache_root: Path, extractor: ArchiveExtractor | None = None) -> None:
        self.cache_root = Path(cache_root)
        self.extractor = extractor or ArchiveExtractor()

    def materialize(self, candidate: Candidate) -> Path:
        return self.extractor.extract(candidate.location, self.cache_root)


def cache_name(url: str) -> str:
    """由仓库 URL 生成文件系统安全的目录名

    https://github.com/org/repo.git -> github_com_org_repo
    git@github.com:org/repo.git     -> github_com_org_repo
    """
    name = url
    for prefix in _URL_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):]
    name = name.removesuffix(".git")
    for ch in ("/", ":", "."):
        name = name.replace(ch, "_")
    return name


def _check_ref(value: str, label: str) -> None:
    if value and (value.startswith("-") or not _SAFE_REF_RE.match(value)):
        raise ValidationError(f"{label} 包含非法字符: {value}")


class GitSource(Source):
    """git 仓库来源

    首次: 浅克隆（--depth 1），指定 commit 时完整克隆后检出；branch / tag 透传给 --branch。
    再次: git pull --ff-only；失败时若指定了 commit 则直接检出该提交，
    否则输出含 "Already up to date" 视为成功。不做自动重试。
    """

    kind = SourceKind.VCS

    def __init__(self, cache_root: Path, executor: CommandExecutor | None = None) -> None:
        self.cache_root = Path(cache_root)
        self.executor = executor or get_executor()

    @property
    def cache_dir(self) -> Path:
        return self.cache_root / VCS_DIR

    def clone_path(self, url: str) -> Path:
        return self.cache_dir / cache_name(url)

    def materialize(self, candidate: Candidate) -> Path:
        spec = candidate.git or GitSpec(url=candidate.location)
        if spec.url.startswith("-"):
            raise ValidationError(f"仓库地址无效: {spec.url}")
        _check_ref(spec.ref, "branch/tag")
        _check_ref(spec.commit, "commit")

        path = self.clone_path(spec.url)
        if (path / ".git").exists():
            self._update(path, spec)
        else:
            self._clone(spec, path)
        return path

    def package_roots(self, path: Path) -> list[Path]:
        """仓库根有清单则为单包，否则扫描一级子目录（单仓多包）"""
        if has_manifest(path):
            return [path]
        roots = [
            child for child in sorted(path.iterdir())
            if child.is_dir() and child.name not in _VCS_METADATA_DIRS and has_manifest(child)
        ]
        if not roots:
            raise FetchError(f"仓库中没有找到包: {path}")
        return roots

    def _git(self, args: list[str], cwd: Path | None = None) -> tuple[bool, str]:
        logger.info("  git %s%s", " ".join(args), f" (cwd={cwd})" if cwd else "")
        r = self.executor.execute(["git", *args], cwd=str(cwd) if cwd else None)
        return r.success, r.output

    def _clone(self, spec: GitSpec, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FetchError(f"无法创建目录 {path.parent}: {e}") from e

        args = ["clone"]
        if spec.ref:
            args += ["--branch", spec.ref]
        if not spec.commit:
            args += ["--depth", "1"]
        args += [spec.url, str(path)]

        ok, output = self._git(args)
        if not ok:
            raise FetchError(f"git clone 失败 ({spec.url})", output)

        if spec.commit:
            ok, output = self._git(["checkout", spec.commit], cwd=path)
            if not ok:
                raise FetchError(f"git checkout {spec.commit} 失败", output)
        logger.info("已克隆 %s -> %s", spec.url, path)

    def _update(self, path: Path, spec: GitSpec) -> None:
        ok, output = self._git(["pull", "--ff-only"], cwd=path)
        if ok:
            return
        if spec.commit:
            ok, checkout_output = self._git(["checkout", spec.commit], cwd=path)
            if not ok:
                raise FetchError(f"git checkout {spec.commit} 失败", checkout_output)
            return
        if "Already up to date" in output or "Already up-to-date" in output:
            return
        raise FetchError("git pull 失败", output)
