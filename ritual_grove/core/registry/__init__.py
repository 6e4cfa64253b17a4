"""包注册表模块

拆分说明:
- models.py: 数据模型
- archive.py: 压缩包安全解压
- sources.py: 各来源适配器（本地 / 内嵌 / 压缩包 / git）
- discovery.py: 默认搜索路径与候选发现
- registry.py: 注册表（扫描 / 查询 / 缓存）
- updates.py: 更新检查
"""

from ritual_grove.core.registry.archive import ArchiveExtractor
from ritual_grove.core.registry.models import (
    Candidate,
    FilterOptions,
    GitSpec,
    RegistryEntry,
    ScanReport,
    SkippedEntry,
    SourceKind,
    UpdateInfo,
    UpdateNotification,
)
from ritual_grove.core.registry.registry import Registry
from ritual_grove.core.registry.updates import UpdateChecker

__all__ = [
    "ArchiveExtractor",
    "Candidate",
    "FilterOptions",
    "GitSpec",
    "Registry",
    "RegistryEntry",
    "ScanReport",
    "SkippedEntry",
    "SourceKind",
    "UpdateChecker",
    "UpdateInfo",
    "UpdateNotification",
]
