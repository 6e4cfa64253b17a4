"""注册表数据模型

- SourceKind: 来源类型（封闭枚举，发现阶段确定，之后按类型分派）
- GitSpec: 版本控制来源描述
- Candidate: 发现阶段产物，尚未落盘 / 索引
- RegistryEntry: 已索引的包
- ScanReport / SkippedEntry: 一次扫描的结果与被跳过的条目及原因
- FilterOptions: 组合过滤条件
- UpdateInfo / UpdateNotification: 更新检查结果
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ritual_grove.core.manifest import Compatibility


class SourceKind(str, Enum):
    LOCAL = "local"
    EMBEDDED = "embedded"
    TARBALL = "tarball"
    VCS = "vcs"


ARCHIVE_SUFFIXES = (".tar.gz", ".tgz")


@dataclass(frozen=True)
class GitSpec:
    """git 来源；branch 优先于 tag，commit 非空时做完整 clone 后检出"""

    url: str
    branch: str = ""
    tag: str = ""
    commit: str = ""

    @property
    def ref(self) -> str:
        return self.branch or self.tag


@dataclass(frozen=True)
class Candidate:
    """待落盘的包来源

    location 的含义随 kind 不同:
      LOCAL    包根目录
      EMBEDDED 内嵌包名
      TARBALL  压缩包文件路径
      VCS      仓库 URL（git 字段给出完整描述）
    """

    kind: SourceKind
    location: str
    git: GitSpec | None = None


@dataclass
class RegistryEntry:
    """已索引的包，按包名唯一，后写入者覆盖"""

    name: str
    version: str
    path: str
    source: SourceKind
    description: str = ""
    author: str = ""
    tags: list[str] = field(default_factory=list)
    url: str = ""
    compatibility: Compatibility | None = None

    def to_dict(self) -> dict[str, object]:
        info: dict[str, object] = {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "author": self.author,
            "tags": list(self.tags),
            "source": self.source.value,
            "path": self.path,
        }
        if self.url:
            info["url"] = self.url
        return info


@dataclass(frozen=True)
class SkippedEntry:
    location: str
    reason: str


@dataclass
class ScanReport:
    indexed: list[RegistryEntry] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)

    @property
    def indexed_names(self) -> list[str]:
        return [e.name for e in self.indexed]


@dataclass
class FilterOptions:
    """组合过滤条件，各项之间为 AND

    tags: 任一命中即可（OR），空列表不过滤
    name_pattern / author: 大小写不敏感的子串匹配
    database_type: 暂不生效，见 Registry.filter
    """

    tags: list[str] = field(default_factory=list)
    name_pattern: str = ""
    author: str = ""
    database_type: str = ""

    def matches(self, entry: RegistryEntry) -> bool:
        if self.name_pattern and self.name_pattern.lower() not in entry.name.lower():
            return False
        if self.tags:
            wanted = {t.lower() for t in self.tags}
            if not any(t.lower() in wanted for t in entry.tags):
                return False
        if self.author and self.author.lower() not in entry.author.lower():
            return False
        return True


@dataclass
class UpdateInfo:
    name: str
    current_version: str
    latest_version: str
    is_update_needed: bool
    changelog: str = ""


@dataclass(frozen=True)
class UpdateNotification:
    name: str
    message: str
