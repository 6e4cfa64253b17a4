"""依赖解析器

职责:
- 把清单里的三类依赖（外部包 / 兄弟模板 / 数据存储）摊平为 Dependency 列表
- 以清单自身包名为节点、兄弟模板依赖为边建图（不递归拉取依赖的依赖）
- 环检测与安装顺序

同一个解析器实例多次 build_graph 会累积节点，
installation_order() 因此可以跨多个清单给出统一顺序。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ritual_grove.core.graph import DependencyGraph

if TYPE_CHECKING:
    from ritual_grove.core.manifest import Manifest
    from ritual_grove.core.registry.registry import Registry

logger = logging.getLogger(__name__)


class DependencyKind(str, Enum):
    """取值沿用清单里的段名: ritual 即兄弟模板，database 即数据存储"""

    PACKAGE = "package"
    SIBLING_TEMPLATE = "ritual"
    DATA_STORE = "database"


@dataclass(frozen=True)
class Dependency:
    name: str
    version: str
    kind: DependencyKind


@dataclass
class InstallPlan:
    """交给外部执行组件的安装计划"""

    order: list[str]
    dependencies: list[Dependency] = field(default_factory=list)

    def of_kind(self, kind: DependencyKind) -> list[Dependency]:
        return [d for d in self.dependencies if d.kind is kind]


class DependencyResolver:
    """清单依赖解析器"""

    def __init__(self, graph: DependencyGraph | None = None) -> None:
        self.graph = graph if graph is not None else DependencyGraph()

    @staticmethod
    def resolve_dependencies(manifest: Manifest) -> list[Dependency]:
        """摊平三类依赖，数据存储只在 required=True 时按类型各出一条"""
        deps = manifest.dependencies
        result = [
            Dependency(name=p, version="", kind=DependencyKind.PACKAGE)
            for p in deps.packages
        ]
        result.extend(
            Dependency(name=r, version="", kind=DependencyKind.SIBLING_TEMPLATE)
            for r in deps.rituals
        )
        db = deps.database
        if db is not None and db.required:
            result.extend(
                Dependency(name=t, version=db.min_version, kind=DependencyKind.DATA_STORE)
                for t in db.types
            )
        return result

    def build_graph(self, manifest: Manifest) -> None:
        self.graph.add_node(manifest.name, list(manifest.dependencies.rituals))

    def validate_dependencies(self, manifest: Manifest) -> None:
        """建图后做环检测，有环抛 CycleError"""
        self.build_graph(manifest)
        self.graph.detect_cycles()

    def installation_order(self) -> list[str]:
        return self.graph.topological_sort()

    def plan(self, manifest: Manifest) -> InstallPlan:
        """校验 + 排序 + 依赖列表一次完成"""
        self.validate_dependencies(manifest)
        order = self.installation_order()
        logger.info("安装顺序 %s: %s", manifest.name, " -> ".join(order))
        return InstallPlan(order=order, dependencies=self.resolve_dependencies(manifest))

    @staticmethod
    def missing_dependencies(manifest: Manifest, registry: Registry) -> list[str]:
        """注册表中找不到的兄弟模板依赖"""
        known = {e.name for e in registry.list()}
        return [r for r in manifest.dependencies.rituals if r not in known]
