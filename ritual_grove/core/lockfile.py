"""ritual.lock 锁文件

把一次依赖解析的结果固定下来: 包自身版本、外部包依赖、
兄弟模板依赖的版本 / 来源 / 清单校验和，便于回溯和复现。
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from ritual_grove.core.exceptions import ManifestError
from ritual_grove.core.manifest import MANIFEST_FILE
from ritual_grove.core.resolver import DependencyKind
from ritual_grove.utils.yaml_io import load_yaml, save_yaml

if TYPE_CHECKING:
    from ritual_grove.core.manifest import Manifest
    from ritual_grove.core.registry.registry import Registry
    from ritual_grove.core.resolver import InstallPlan

logger = logging.getLogger(__name__)

LOCK_FILE = "ritual.lock"


@dataclass
class RitualLock:
    name: str
    version: str
    resolved_at: str = ""


@dataclass
class DependencyLock:
    """外部包依赖"""

    name: str
    version: str = ""
    resolved: str = ""
    checksum: str = ""


@dataclass
class RitualDependencyLock:
    """兄弟模板依赖"""

    name: str
    version: str = ""
    source: str = ""
    checksum: str = ""


@dataclass
class LockFile:
    ritual: RitualLock
    dependencies: list[DependencyLock] = field(default_factory=list)
    rituals: list[RitualDependencyLock] = field(default_factory=list)

    @classmethod
    def from_plan(
        cls, manifest: Manifest, plan: InstallPlan, registry: Registry,
    ) -> LockFile:
        """由安装计划生成锁文件，兄弟模板必须已在注册表中"""
        rituals = []
        for dep in plan.of_kind(DependencyKind.SIBLING_TEMPLATE):
            entry = registry.get(dep.name)
            rituals.append(RitualDependencyLock(
                name=entry.name,
                version=entry.version,
                source=entry.source.value,
                checksum=manifest_checksum(entry.path),
            ))
        return cls(
            ritual=RitualLock(
                name=manifest.name,
                version=manifest.version,
                resolved_at=datetime.now(tz=timezone.utc).isoformat(),
            ),
            dependencies=[
                DependencyLock(name=d.name, version=d.version)
                for d in plan.of_kind(DependencyKind.PACKAGE)
            ],
            rituals=rituals,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def save(self, path: str | Path) -> None:
        save_yaml(path, self.to_dict())
        logger.info("锁文件已写入: %s", path)


def manifest_checksum(package_dir: str | Path) -> str:
    """包清单文件的 sha256"""
    sha256 = hashlib.sha256()
    with open(Path(package_dir) / MANIFEST_FILE, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def _fields(cls: type, item: dict[str, Any]) -> dict[str, str]:
    known = cls.__dataclass_fields__
    return {k: str(v) for k, v in item.items() if k in known}


def load_lock_file(path: str | Path) -> LockFile:
    """读取锁文件

    异常:
        ManifestError: 文件不存在、无法解析或缺少 ritual 段
    """
    p = Path(path)
    if not p.is_file():
        raise ManifestError(f"锁文件不存在: {p}")
    try:
        data = load_yaml(p)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ManifestError(f"读取锁文件失败: {p} - {e}") from e

    head = data.get("ritual")
    if not isinstance(head, dict) or not head.get("name"):
        raise ManifestError(f"锁文件缺少 ritual 段: {p}")
    return LockFile(
        ritual=RitualLock(
            name=str(head["name"]),
            version=str(head.get("version", "")),
            resolved_at=str(head.get("resolved_at", "")),
        ),
        dependencies=[
            DependencyLock(**_fields(DependencyLock, d))
            for d in data.get("dependencies") or []
        ],
        rituals=[
            RitualDependencyLock(**_fields(RitualDependencyLock, r))
            for r in data.get("rituals") or []
        ],
    )
