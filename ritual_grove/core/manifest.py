"""包清单 (ritual.yaml) 边界模型

清单格式和完整校验由外部组件负责，这里只提供注册表和依赖解析
需要的最小视图: 元信息、兼容范围、依赖声明。questions / files
原样保留给渲染和问答组件。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ritual_grove.core.exceptions import ManifestError
from ritual_grove.utils.yaml_io import load_yaml, parse_yaml

logger = logging.getLogger(__name__)

MANIFEST_FILE = "ritual.yaml"
DEFAULT_TEMPLATE_ENGINE = "fith"


@dataclass
class PackageMeta:
    """ritual 段: 包元信息"""

    name: str
    version: str
    description: str = ""
    author: str = ""
    license: str = ""
    homepage: str = ""
    repository: str = ""
    tags: list[str] = field(default_factory=list)
    template_engine: str = DEFAULT_TEMPLATE_ENGINE


@dataclass
class Compatibility:
    """宿主工具版本范围，缺省的一端不做限制"""

    min_tool_version: str = ""
    max_tool_version: str = ""


@dataclass
class DatabaseRequirement:
    required: bool = False
    types: list[str] = field(default_factory=list)  # postgres, mysql, sqlite
    min_version: str = ""


@dataclass
class Dependencies:
    packages: list[str] = field(default_factory=list)
    rituals: list[str] = field(default_factory=list)  # 兄弟模板
    database: DatabaseRequirement | None = None


@dataclass
class Manifest:
    """解析后的包清单"""

    ritual: PackageMeta
    compatibility: Compatibility | None = None
    dependencies: Dependencies = field(default_factory=Dependencies)
    questions: list[dict[str, Any]] = field(default_factory=list)
    files: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.ritual.name

    @property
    def version(self) -> str:
        return self.ritual.version


def _str_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(f"{where} 必须是列表")
    return [str(v) for v in value]


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ManifestError(f"{key} 段必须是映射")
    return value


def _questions(value: Any) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(q, dict) for q in value):
        raise ManifestError("questions 必须是映射列表")
    return list(value)


def parse_manifest(data: dict[str, Any]) -> Manifest:
    """从已解析的 YAML 字典构建 Manifest

    异常:
        ManifestError: 缺少 ritual.name / ritual.version 或字段类型不对
    """
    meta = _section(data, "ritual")
    name = str(meta.get("name") or "")
    version = str(meta.get("version") or "")
    if not name:
        raise ManifestError("ritual.name 为必填")
    if not version:
        raise ManifestError(f"ritual.version 为必填 ({name})")

    compat: Compatibility | None = None
    compat_data = _section(data, "compatibility")
    if compat_data:
        compat = Compatibility(
            min_tool_version=str(compat_data.get("min_touta_version") or ""),
            max_tool_version=str(compat_data.get("max_touta_version") or ""),
        )

    deps_data = _section(data, "dependencies")
    database: DatabaseRequirement | None = None
    db_data = deps_data.get("database")
    if isinstance(db_data, dict):
        database = DatabaseRequirement(
            required=bool(db_data.get("required", False)),
            types=_str_list(db_data.get("types"), "dependencies.database.types"),
            min_version=str(db_data.get("min_version") or ""),
        )

    return Manifest(
        ritual=PackageMeta(
            name=name,
            version=version,
            description=str(meta.get("description") or ""),
            author=str(meta.get("author") or ""),
            license=str(meta.get("license") or ""),
            homepage=str(meta.get("homepage") or ""),
            repository=str(meta.get("repository") or ""),
            tags=_str_list(meta.get("tags"), "ritual.tags"),
            template_engine=str(meta.get("template_engine") or DEFAULT_TEMPLATE_ENGINE),
        ),
        compatibility=compat,
        dependencies=Dependencies(
            packages=_str_list(deps_data.get("packages"), "dependencies.packages"),
            rituals=_str_list(deps_data.get("rituals"), "dependencies.rituals"),
            database=database,
        ),
        questions=_questions(data.get("questions")),
        files=_section(data, "files"),
        raw=data,
    )


def load_manifest_bytes(content: bytes, *, source: str = "<bytes>") -> Manifest:
    """从原始字节解析清单（内嵌包使用）"""
    try:
        data = parse_yaml(content, source=source)
    except yaml.YAMLError as e:
        raise ManifestError(f"解析 {source} 失败: {e}") from e
    return parse_manifest(data)


def load_manifest(package_dir: str | Path) -> Manifest:
    """读取包根目录下的 ritual.yaml

    异常:
        ManifestError: 文件不存在、无法读取、无法解析或内容无效
    """
    path = Path(package_dir) / MANIFEST_FILE
    if not path.is_file():
        raise ManifestError(f"未找到 {MANIFEST_FILE}: {package_dir}")
    try:
        data = load_yaml(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ManifestError(f"读取 {path} 失败: {e}") from e
    logger.debug("加载清单: %s", path)
    return parse_manifest(data)


def has_manifest(package_dir: str | Path) -> bool:
    """目录根部是否存在清单文件（只看文件是否存在，不解析）"""
    return (Path(package_dir) / MANIFEST_FILE).is_file()


def is_loadable(package_dir: str | Path) -> bool:
    """清单存在且能成功加载"""
    try:
        load_manifest(package_dir)
    except ManifestError:
        return False
    return True
