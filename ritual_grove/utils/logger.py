"""ritual-grove 日志配置

文本与结构化 JSON 两种输出格式，由 CLI 入口按环境变量选择:
  RITUAL_GROVE_LOG_LEVEL  日志级别（默认 INFO）
  RITUAL_GROVE_LOG_JSON   为 "1" 时输出 JSON 行
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO

TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"

# 扫描流程通过 extra={...} 附带的上下文字段，JSON 输出时原样带出
_CONTEXT_FIELDS = ("location", "kind", "package")


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器，每条记录一行

    输出字段: timestamp / level / logger / message / module / line，
    以及可选的 location / kind / package 上下文和 exception。
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = str(value)
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """配置根日志器（重复调用不会叠加 handler）

    参数:
        level: 日志级别字符串，无法识别时回退到 INFO
        json_output: True 时使用 JSONFormatter
        stream: 输出流，默认 stderr
    """
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)


def reset_logging() -> None:
    """移除并关闭根日志器上的全部 handler"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
