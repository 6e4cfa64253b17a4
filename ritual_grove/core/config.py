"""集中配置管理

提供注册表缓存目录、附加搜索路径、git 来源和日志选项的统一入口。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ritual_grove.core.exceptions import ConfigError
from ritual_grove.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_HOME_DIR = ".ritual-grove"
DEFAULT_CONFIG_FILE = f"~/{DEFAULT_HOME_DIR}/config.yml"
DEFAULT_PATH_ENV_VAR = "RITUAL_GROVE_PATH"


@dataclass
class Config:
    """全局配置"""

    # 目录
    cache_dir: str = f"~/{DEFAULT_HOME_DIR}/cache"
    search_paths: list[str] = field(default_factory=list)  # 追加在默认路径之后
    use_default_search_paths: bool = True
    path_env_var: str = DEFAULT_PATH_ENV_VAR

    # 远程来源，每项 {url, branch, tag, commit}
    git_sources: list[dict[str, str]] = field(default_factory=list)

    # 日志
    log_level: str = "INFO"
    log_json: bool = False

    # 放不到字段里的配置项
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir).expanduser()

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        p = Path(path).expanduser()
        try:
            data = load_yaml(p)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"读取配置失败: {p} - {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置字段无效: {p} - {e}") from e
        cfg.extra = extra
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if not isinstance(self.search_paths, list):
            raise ConfigError("search_paths 必须是列表")
        for i, src in enumerate(self.git_sources):
            if not isinstance(src, dict) or not src.get("url"):
                raise ConfigError(f"git_sources[{i}] 缺少 url")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current


def reset_config() -> None:
    """丢弃全局配置（测试用）"""
    global _current  # noqa: PLW0603
    _current = None
