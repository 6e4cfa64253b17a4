"""统一异常体系

所有业务异常继承 GroveError，替代散落的 ValueError / RuntimeError / OSError。
CLI 层据此输出友好提示；逐条目容错的流程（扫描、批量更新检查）
据此区分“可跳过的单条失败”和“必须中止的失败”。
"""

from __future__ import annotations


class GroveError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(GroveError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(GroveError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class PackageNotFoundError(GroveError):
    """注册表中不存在指定的包"""

    code = "NOT_FOUND"


class NoMatchingVersionError(PackageNotFoundError):
    """候选版本中没有满足约束的版本"""

    code = "NO_MATCHING_VERSION"


class VersionParseError(GroveError):
    """版本号或版本约束格式错误"""

    code = "PARSE_ERROR"


class CycleError(GroveError):
    """依赖图中存在环，path 为发现的环路径（含重复出现的节点名）"""

    code = "CYCLE_ERROR"

    def __init__(self, path: list[str]) -> None:
        super().__init__(f"检测到循环依赖: {' -> '.join(path)}")
        self.path = list(path)


class ExtractionError(GroveError):
    """压缩包无法读取、已损坏，或目标目录无法创建"""

    code = "EXTRACTION_ERROR"


class FetchError(GroveError):
    """版本控制来源拉取失败（clone / pull / checkout），output 为客户端原始输出"""

    code = "FETCH_ERROR"

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(f"{message}: {output}" if output else message)
        self.output = output


class ManifestError(GroveError):
    """包清单文件缺失、无法解析或缺少必填字段"""

    code = "MANIFEST_ERROR"


class CacheError(GroveError):
    """缓存根目录无法创建或写入"""

    code = "CACHE_ERROR"
