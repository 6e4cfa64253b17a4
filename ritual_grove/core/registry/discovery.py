"""包发现 - 默认搜索路径 + 纯读取的候选枚举

discover() 只读目录，不解压、不联网、不修改索引；
落盘和索引分别由来源适配器和 Registry 完成。
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterable

from ritual_grove.core.config import DEFAULT_HOME_DIR, Config
from ritual_grove.core.manifest import has_manifest
from ritual_grove.core.registry.archive import is_archive
from ritual_grove.core.registry.models import Candidate, GitSpec, SkippedEntry, SourceKind

logger = logging.getLogger(__name__)

RITUALS_DIR = "rituals"
HIDDEN_PROJECT_DIR = ".rituals"


def default_search_paths(
    config: Config,
    *,
    cwd: Path | None = None,
    home: Path | None = None,
    executable_dir: Path | None = None,
    environ: dict[str, str] | None = None,
) -> list[Path]:
    """按优先级组装默认搜索路径

    1. 环境变量指定的目录（存在时）
    2. 可执行文件同级的 rituals/（存在时）
    3. 当前目录下的 .rituals/
    4. 当前目录下的 rituals/
    5. ~/.ritual-grove/rituals
    之后追加配置中的 search_paths。路径全部参与扫描，重复路径只保留第一次出现。
    """
    env = os.environ if environ is None else environ
    paths: list[Path] = []

    if config.use_default_search_paths:
        override = env.get(config.path_env_var, "")
        if override and Path(override).expanduser().is_dir():
            paths.append(Path(override).expanduser())

        exe_dir = executable_dir if executable_dir is not None else _executable_dir()
        if exe_dir is not None and (exe_dir / RITUALS_DIR).is_dir():
            paths.append(exe_dir / RITUALS_DIR)

        base = cwd if cwd is not None else Path.cwd()
        paths.append(base / HIDDEN_PROJECT_DIR)
        paths.append(base / RITUALS_DIR)

        user_home = home if home is not None else Path.home()
        paths.append(user_home / DEFAULT_HOME_DIR / RITUALS_DIR)

    paths.extend(Path(p).expanduser() for p in config.search_paths)
    return _dedupe(paths)


def _executable_dir() -> Path | None:
    if not sys.argv or not sys.argv[0]:
        return None
    return Path(sys.argv[0]).resolve().parent


def _dedupe(paths: list[Path]) -> list[Path]:
    seen: set[str] = set()
    result = []
    for p in paths:
        key = os.path.normpath(os.path.abspath(p))
        if key not in seen:
            seen.add(key)
            result.append(p)
    return result


def discover_location(location: Path) -> list[Candidate]:
    """枚举单个搜索路径下的候选，路径不存在时返回空列表

    异常:
        OSError: 目录无法读取
    """
    if not location.is_dir():
        return []
    candidates = []
    for entry in sorted(location.iterdir()):
        if entry.is_dir():
            if has_manifest(entry):
                candidates.append(Candidate(kind=SourceKind.LOCAL, location=str(entry)))
        elif entry.is_file() and is_archive(entry):
            candidates.append(Candidate(kind=SourceKind.TARBALL, location=str(entry)))
    return candidates


def discover(
    locations: Iterable[Path],
    *,
    embedded: Iterable[str] = (),
    git: Iterable[GitSpec] = (),
    skipped: list[SkippedEntry] | None = None,
) -> list[Candidate]:
    """按 内嵌包 -> 搜索路径 -> git 来源 的顺序列出全部候选

    无法读取的搜索路径记入 skipped 后继续。
    """
    candidates = [Candidate(kind=SourceKind.EMBEDDED, location=name) for name in embedded]
    for location in locations:
        try:
            candidates.extend(discover_location(location))
        except OSError as e:
            logger.warning("无法读取搜索路径 %s: %s", location, e, extra={"location": str(location)})
            if skipped is not None:
                skipped.append(SkippedEntry(location=str(location), reason=str(e)))
    candidates.extend(
        Candidate(kind=SourceKind.VCS, location=spec.url, git=spec) for spec in git
    )
    return candidates
