"""YAML 文件读写工具

统一 encoding="utf-8"、空值保护、大小上限和原子写入。
清单、配置、锁文件和已安装版本表都经由这里读写。
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 单个 YAML 文件大小上限 (10MB)，防止来源不可信的清单耗尽内存
MAX_YAML_SIZE = 10 * 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """先写同目录临时文件再 rename，中途失败不留下半截文件"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, str(path))
    except Exception:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def parse_yaml(text: str | bytes, *, source: str = "<string>") -> dict[str, Any]:
    """解析 YAML 文本，顶层不是字典时返回空字典

    异常:
        yaml.YAMLError: 语法错误
    """
    result = yaml.safe_load(text)
    if result is None:
        return {}
    if not isinstance(result, dict):
        logger.warning(
            "%s 内容不是字典类型 (实际类型: %s)，按空处理",
            source, type(result).__name__,
        )
        return {}
    return result


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取 YAML 文件，文件不存在时返回空字典

    异常:
        ValueError: 文件超过 MAX_YAML_SIZE
        yaml.YAMLError: 语法错误
        OSError: 读取失败
    """
    p = Path(path)
    if not p.exists():
        return {}

    size = p.stat().st_size
    if size > MAX_YAML_SIZE:
        raise ValueError(
            f"YAML 文件过大: {p} ({size} 字节), 超过限制 {MAX_YAML_SIZE} 字节"
        )

    with open(p, encoding="utf-8") as f:
        return parse_yaml(f.read(), source=str(p))


def save_yaml(path: str | Path, data: Any) -> None:
    """原子写入 YAML 文件，保持键顺序"""
    content = yaml.dump(
        data, default_flow_style=False,
        allow_unicode=True, sort_keys=False,
    )
    atomic_write(Path(path), content)
