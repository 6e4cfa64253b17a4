"""依赖有向图

节点只保存名字和依赖名列表。遍历状态（未访问 / 进行中 / 已访问）
保存在每次遍历独享的 _Traversal 对象里，不写回节点，
因此同一个图可以在修改后反复查询，多个只读遍历也互不干扰。

依赖名在图中不存在时直接跳过，不视为错误。
节点按插入顺序遍历、依赖按声明顺序遍历，所以同一插入序列下
报告的环路径是确定的。

遍历是递归实现，依赖链深度受 Python 递归上限（默认约 1000）限制。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ritual_grove.core.exceptions import CycleError


@dataclass(frozen=True)
class DependencyNode:
    name: str
    dependencies: tuple[str, ...] = ()


class _State(Enum):
    IN_PROGRESS = "in_progress"
    VISITED = "visited"


@dataclass
class _Traversal:
    """单次遍历的状态表"""

    nodes: dict[str, DependencyNode]
    state: dict[str, _State] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    def check(self, name: str, path: list[str]) -> None:
        node = self.nodes.get(name)
        if node is None:
            return
        current = self.state.get(name)
        if current is _State.IN_PROGRESS:
            raise CycleError([*path, name])
        if current is _State.VISITED:
            return

        self.state[name] = _State.IN_PROGRESS
        path.append(name)
        for dep in node.dependencies:
            self.check(dep, path)
        path.pop()
        self.state[name] = _State.VISITED

    def emit(self, name: str) -> None:
        """后序输出: 依赖先于依赖方"""
        node = self.nodes.get(name)
        if node is None or name in self.state:
            return
        self.state[name] = _State.VISITED
        for dep in node.dependencies:
            self.emit(dep)
        self.order.append(name)


class DependencyGraph:
    """依赖图: 环检测 + 拓扑排序"""

    def __init__(self) -> None:
        self._nodes: dict[str, DependencyNode] = {}

    def add_node(self, name: str, dependencies: list[str] | tuple[str, ...] = ()) -> None:
        """插入或覆盖节点"""
        self._nodes[name] = DependencyNode(name=name, dependencies=tuple(dependencies))

    def get(self, name: str) -> DependencyNode | None:
        return self._nodes.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def detect_cycles(self) -> None:
        """深度优先检测环，发现即抛 CycleError（含自环）"""
        walk = _Traversal(self._nodes)
        for name in self._nodes:
            walk.check(name, [])

    def topological_sort(self) -> list[str]:
        """返回安装顺序（每个节点恰好出现一次），有环时抛 CycleError"""
        self.detect_cycles()
        walk = _Traversal(self._nodes)
        for name in self._nodes:
            walk.emit(name)
        return walk.order
