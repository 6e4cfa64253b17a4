"""三段式版本号模型

只支持 major.minor.patch 三段非负整数（可带前缀 v），
不支持预发布 / 构建元数据后缀。约束只有单个比较运算符:
=, >, >=, <, <=
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

from ritual_grove.core.exceptions import NoMatchingVersionError, VersionParseError

# 最长匹配优先: >= / <= 必须排在 > / < 之前
_CONSTRAINT_RE = re.compile(r"^(>=|<=|=|>|<)(.+)$")

OPERATORS = ("=", ">", ">=", "<", "<=")


@total_ordering
@dataclass(frozen=True)
class Version:
    """语义化版本号 (major, minor, patch)，按三元组字典序全序比较"""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def compare(self, other: Version) -> int:
        """返回 -1 / 0 / 1"""
        a = (self.major, self.minor, self.patch)
        b = (other.major, other.minor, other.patch)
        if a == b:
            return 0
        return 1 if a > b else -1

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0


def _parse_component(part: str, label: str) -> int:
    # int() 会接受 "+1"、" 1"、"1_0" 等写法，这里只放行纯数字
    if not part.isdigit() or not part.isascii():
        raise VersionParseError(f"无效的 {label} 版本号: {part!r}")
    return int(part)


def parse_version(s: str) -> Version:
    """解析版本字符串，如 "1.2.3" 或 "v1.2.3"

    异常:
        VersionParseError: 空串、段数不是 3、任一段不是非负整数
    """
    raw = s[1:] if s.startswith("v") else s
    if not raw:
        raise VersionParseError("版本号为空")

    parts = raw.split(".")
    if len(parts) != 3:
        raise VersionParseError(f"版本格式无效，期望 x.y.z: {s!r}")

    return Version(
        major=_parse_component(parts[0], "major"),
        minor=_parse_component(parts[1], "minor"),
        patch=_parse_component(parts[2], "patch"),
    )


def format_version(v: Version) -> str:
    return str(v)


def compare_versions(a: Version, b: Version) -> int:
    return a.compare(b)


@dataclass(frozen=True)
class Constraint:
    """版本约束: 运算符 + 版本"""

    operator: str
    version: Version

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"

    def satisfies(self, v: Version) -> bool:
        cmp = v.compare(self.version)
        if self.operator == "=":
            return cmp == 0
        if self.operator == ">":
            return cmp > 0
        if self.operator == ">=":
            return cmp >= 0
        if self.operator == "<":
            return cmp < 0
        if self.operator == "<=":
            return cmp <= 0
        return False


def parse_constraint(s: str) -> Constraint:
    """解析形如 ">=1.0.0" 的约束

    异常:
        VersionParseError: 运算符不在支持列表、缺少版本或版本无效
    """
    m = _CONSTRAINT_RE.match(s)
    if m is None:
        raise VersionParseError(f"约束格式无效: {s!r}")
    try:
        version = parse_version(m.group(2))
    except VersionParseError as e:
        raise VersionParseError(f"约束中的版本无效: {s!r} ({e})") from e
    return Constraint(operator=m.group(1), version=version)


def select_best_version(versions: list[str], constraint: Constraint) -> str:
    """在候选中选出满足约束的最高版本，返回原始字符串

    无法解析的候选直接跳过，不视为错误。

    异常:
        NoMatchingVersionError: 没有任何候选满足约束
    """
    best: Version | None = None
    best_str = ""
    for candidate in versions:
        try:
            v = parse_version(candidate)
        except VersionParseError:
            continue
        if not constraint.satisfies(v):
            continue
        if best is None or v.compare(best) > 0:
            best = v
            best_str = candidate

    if best is None:
        raise NoMatchingVersionError(f"没有版本满足约束 {constraint}")
    return best_str


def is_version_newer(candidate: str, current: str) -> bool:
    """candidate 严格新于 current 时返回 True，任一参数无效则抛 VersionParseError"""
    return parse_version(candidate).compare(parse_version(current)) > 0
