"""更新检查 - 对比注册表中的版本与调用方给出的已安装版本"""

from __future__ import annotations

import logging
from pathlib import Path

from ritual_grove.core.exceptions import PackageNotFoundError, VersionParseError
from ritual_grove.core.registry.models import UpdateInfo, UpdateNotification
from ritual_grove.core.registry.registry import Registry
from ritual_grove.core.version import is_version_newer

logger = logging.getLogger(__name__)

CHANGELOG_FILE = "CHANGELOG.md"


class UpdateChecker:
    """基于已填充的 Registry 做更新检查，不触发扫描"""

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def check_for_updates(self, name: str, current_version: str) -> UpdateInfo:
        """检查单个包

        异常:
            PackageNotFoundError: 包不在注册表中
            VersionParseError: 任一版本号无效
        """
        entry = self.registry.get(name)
        return UpdateInfo(
            name=name,
            current_version=current_version,
            latest_version=entry.version,
            is_update_needed=is_version_newer(entry.version, current_version),
        )

    def check_all_updates(
        self, installed: dict[str, str], *, with_changelog: bool = False,
    ) -> list[UpdateInfo]:
        """批量检查，只返回需要更新的项

        注册表中没有的包、版本号无效的包逐项跳过，不影响其余项。
        """
        updates = []
        for name, current in installed.items():
            try:
                info = self.check_for_updates(name, current)
            except PackageNotFoundError:
                logger.debug("跳过未注册的包: %s", name)
                continue
            except VersionParseError as e:
                logger.warning("跳过版本无效的包 %s: %s", name, e)
                continue
            if not info.is_update_needed:
                continue
            if with_changelog:
                info.changelog = self.changelog(name, current, info.latest_version)
            updates.append(info)
        return updates

    def notifications(self, installed: dict[str, str]) -> list[UpdateNotification]:
        return [
            UpdateNotification(
                name=u.name,
                message=f"Update available for {u.name}: {u.current_version} -> {u.latest_version}",
            )
            for u in self.check_all_updates(installed)
        ]

    def changelog(self, name: str, from_version: str, to_version: str) -> str:
        """包目录下的 CHANGELOG.md 全文，没有时返回占位说明"""
        entry = self.registry.get(name)
        path = Path(entry.path) / CHANGELOG_FILE
        if path.is_file():
            try:
                return path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning("读取更新日志失败 %s: %s", path, e)
        return f"Version {from_version} -> {to_version}\n\nNo changelog available."
