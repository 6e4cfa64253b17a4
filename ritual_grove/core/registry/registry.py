"""包注册表

职责:
- 扫描: 发现 (discover) -> 落盘 (materialize) -> 索引 (index) 三段流水线
- 查询: get / load / list / search / filter / filter_by_tag / sort_by_name
- 缓存生命周期: clear_cache / clear_embedded_cache / cache_size

扫描采用“尽力而为”策略: 单个候选失败只记入 ScanReport.skipped，
不影响其他包；只有缓存根目录不可写时整个扫描才失败。

非线程安全: 同一实例上的并发 scan / 索引修改需要调用方自行串行化。
"""

from __future__ import annotations

import logging
import os
import shutil
from importlib.resources.abc import Traversable
from pathlib import Path

from ritual_grove.core.config import Config, get_config
from ritual_grove.core.exceptions import (
    CacheError,
    FetchError,
    GroveError,
    PackageNotFoundError,
    VersionParseError,
)
from ritual_grove.core.manifest import Manifest, load_manifest
from ritual_grove.core.registry.archive import ArchiveExtractor
from ritual_grove.core.registry.discovery import default_search_paths, discover
from ritual_grove.core.registry.models import (
    Candidate,
    FilterOptions,
    GitSpec,
    RegistryEntry,
    ScanReport,
    SkippedEntry,
    SourceKind,
)
from ritual_grove.core.registry.sources import (
    EmbeddedSource,
    GitSource,
    LocalSource,
    Source,
    TarballSource,
)
from ritual_grove.core.version import parse_version
from ritual_grove.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class Registry:
    """包注册表 - 内存索引以包名为键，每次 scan 重建"""

    def __init__(
        self,
        *,
        config: Config | None = None,
        cache_dir: str | Path | None = None,
        search_paths: list[str | Path] | None = None,
        embedded_bundle: Traversable | None = None,
        include_embedded: bool = True,
        executor: CommandExecutor | None = None,
        extractor: ArchiveExtractor | None = None,
    ) -> None:
        self.config = config or get_config()
        self._cache_dir = Path(cache_dir).expanduser() if cache_dir else self.config.cache_path
        if search_paths is None:
            self._search_paths = default_search_paths(self.config)
        else:
            self._search_paths = [Path(p) for p in search_paths]
        self._git_specs = [
            GitSpec(
                url=str(s["url"]),
                branch=str(s.get("branch") or ""),
                tag=str(s.get("tag") or ""),
                commit=str(s.get("commit") or ""),
            )
            for s in self.config.git_sources
        ]
        self.include_embedded = include_embedded

        self._embedded = EmbeddedSource(self._cache_dir, embedded_bundle)
        self._sources: dict[SourceKind, Source] = {
            SourceKind.LOCAL: LocalSource(),
            SourceKind.EMBEDDED: self._embedded,
            SourceKind.TARBALL: TarballSource(self._cache_dir, extractor),
            SourceKind.VCS: GitSource(self._cache_dir, executor),
        }
        self._entries: dict[str, RegistryEntry] = {}

    # ---- 属性 ----

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def search_paths(self) -> list[Path]:
        return list(self._search_paths)

    def add_search_path(self, path: str | Path) -> None:
        self._search_paths.append(Path(path))

    # ---- 扫描流水线 ----

    def discover(self, skipped: list[SkippedEntry] | None = None) -> list[Candidate]:
        """列出全部候选（只读，不落盘）"""
        embedded: list[str] = []
        if self.include_embedded:
            try:
                embedded = self._embedded.names()
            except OSError as e:
                logger.warning("无法读取内嵌包目录: %s", e)
        return discover(
            self._search_paths, embedded=embedded, git=self._git_specs, skipped=skipped,
        )

    def materialize(self, candidate: Candidate) -> Path:
        return self._sources[candidate.kind].materialize(candidate)

    def index(self, path: str | Path, kind: SourceKind, *, url: str = "") -> RegistryEntry:
        """加载包清单并写入索引（同名覆盖）

        异常:
            ManifestError: 清单缺失或无效
        """
        manifest = load_manifest(path)
        entry = RegistryEntry(
            name=manifest.name,
            version=manifest.version,
            path=os.path.abspath(path),
            source=kind,
            description=manifest.ritual.description,
            author=manifest.ritual.author,
            tags=list(manifest.ritual.tags),
            url=url,
            compatibility=manifest.compatibility,
        )
        previous = self._entries.get(entry.name)
        if previous is not None and previous.path != entry.path:
            logger.debug("覆盖同名包 %s: %s -> %s", entry.name, previous.path, entry.path)
        self._entries[entry.name] = entry
        return entry

    def scan(self) -> ScanReport:
        """重建索引

        异常:
            CacheError: 缓存根目录无法创建
        """
        self._ensure_cache_dir()
        self._entries = {}
        report = ScanReport()

        for candidate in self.discover(skipped=report.skipped):
            self._ingest(candidate, report)

        logger.info(
            "扫描完成: 已索引 %d 个包, 跳过 %d 项",
            len(self._entries), len(report.skipped),
        )
        return report

    def _ensure_cache_dir(self) -> None:
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"无法创建缓存目录 {self._cache_dir}: {e}") from e
        if not os.access(self._cache_dir, os.W_OK):
            raise CacheError(f"缓存目录不可写: {self._cache_dir}")

    def _ingest(self, candidate: Candidate, report: ScanReport) -> None:
        source = self._sources[candidate.kind]
        url = candidate.git.url if candidate.git else ""
        try:
            path = source.materialize(candidate)
            roots = source.package_roots(path)
        except (GroveError, OSError) as e:
            self._skip(report, candidate.location, e, candidate.kind)
            return

        for root in roots:
            try:
                report.indexed.append(self.index(root, candidate.kind, url=url))
            except (GroveError, OSError) as e:
                self._skip(report, str(root), e, candidate.kind)

    @staticmethod
    def _skip(report: ScanReport, location: str, err: Exception, kind: SourceKind) -> None:
        logger.warning(
            "跳过 %s (%s): %s", location, kind.value, err,
            extra={"location": location, "kind": kind.value},
        )
        report.skipped.append(SkippedEntry(location=location, reason=str(err)))

    def load_from_git(self, spec: GitSpec) -> list[RegistryEntry]:
        """克隆 / 更新 git 仓库并索引其中的包

        异常:
            FetchError: clone / pull / checkout 失败，或仓库中没有可加载的包
        """
        self._ensure_cache_dir()
        candidate = Candidate(kind=SourceKind.VCS, location=spec.url, git=spec)
        report = ScanReport()
        self._ingest(candidate, report)
        if not report.indexed:
            reasons = "; ".join(s.reason for s in report.skipped)
            raise FetchError(f"未能从 {spec.url} 加载任何包", reasons)
        return report.indexed

    # ---- 查询 ----

    def get(self, name: str) -> RegistryEntry:
        entry = self._entries.get(name)
        if entry is None:
            raise PackageNotFoundError(
                f"包 '{name}' 不在注册表中。可用: {sorted(self._entries)}"
            )
        return entry

    def load(self, name: str) -> Manifest:
        """每次重新读取清单，外部修改无需重新扫描即可生效"""
        return load_manifest(self.get(name).path)

    def list(self) -> list[RegistryEntry]:
        return list(self._entries.values())

    def search(self, query: str) -> list[RegistryEntry]:
        """名称 / 描述 / 标签的大小写不敏感子串匹配"""
        q = query.lower()
        return [
            e for e in self._entries.values()
            if q in e.name.lower()
            or q in e.description.lower()
            or any(q in t.lower() for t in e.tags)
        ]

    def filter_by_tag(self, tag: str) -> list[RegistryEntry]:
        wanted = tag.lower()
        return [
            e for e in self._entries.values()
            if any(t.lower() == wanted for t in e.tags)
        ]

    def filter(self, options: FilterOptions) -> list[RegistryEntry]:
        # database_type 需要读取清单的 dependencies.database，目前恒为通过
        if options.database_type:
            logger.debug("database_type 过滤未启用，忽略: %s", options.database_type)
        return [e for e in self._entries.values() if options.matches(e)]

    def filter_by_compatibility(self, host_version: str) -> list[RegistryEntry]:
        """兼容范围 [min, max] 包含 host_version 的包，未声明范围的视为兼容

        异常:
            VersionParseError: host_version 无效
        """
        host = parse_version(host_version)
        result = []
        for e in self._entries.values():
            compat = e.compatibility
            if compat is None:
                result.append(e)
                continue
            try:
                if compat.min_tool_version and host < parse_version(compat.min_tool_version):
                    continue
                if compat.max_tool_version and host > parse_version(compat.max_tool_version):
                    continue
            except VersionParseError as err:
                logger.warning("包 %s 的兼容范围无效，已排除: %s", e.name, err)
                continue
            result.append(e)
        return result

    @staticmethod
    def sort_by_name(entries: list[RegistryEntry]) -> list[RegistryEntry]:
        """按名称大小写不敏感稳定排序，返回新列表"""
        return sorted(entries, key=lambda e: e.name.lower())

    def latest_version(self, name: str) -> str:
        return self.get(name).version

    # ---- 缓存 ----

    def clear_cache(self) -> None:
        """删除并重建整个缓存根目录，索引中位于缓存内的条目随之失效"""
        self._remove_tree(self._cache_dir)
        self._ensure_cache_dir()
        logger.info("缓存已清空: %s", self._cache_dir)

    def clear_embedded_cache(self) -> None:
        """只删除内嵌包缓存，保留 vcs / 压缩包缓存"""
        self._remove_tree(self._embedded.cache_dir)
        logger.info("内嵌包缓存已清空: %s", self._embedded.cache_dir)

    def _remove_tree(self, root: Path) -> None:
        if root.exists():
            try:
                shutil.rmtree(root)
            except OSError as e:
                raise CacheError(f"无法删除 {root}: {e}") from e
        prefix = os.path.abspath(root) + os.sep
        self._entries = {
            name: e for name, e in self._entries.items()
            if not (e.path + os.sep).startswith(prefix)
        }

    def cache_size(self) -> int:
        """缓存根目录下全部文件的字节数之和（不跟随符号链接）"""
        if not self._cache_dir.exists():
            return 0
        total = 0
        try:
            for dirpath, _dirnames, filenames in os.walk(self._cache_dir):
                for f in filenames:
                    total += os.lstat(os.path.join(dirpath, f)).st_size
        except OSError as e:
            raise CacheError(f"无法统计缓存大小: {e}") from e
        return total
