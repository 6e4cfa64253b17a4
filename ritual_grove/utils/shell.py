"""子进程执行工具

通过 CommandExecutor 协议抽象外部命令调用（目前只有 git），
测试时注入假实现即可，无需 patch subprocess。
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    output: str  # stdout + stderr 合并输出

    @property
    def success(self) -> bool:
        return self.returncode == 0


class CommandExecutor(Protocol):
    """命令执行器协议"""

    def execute(self, args: list[str], *, cwd: str | None = None) -> CommandResult:
        """执行命令并返回结果，不因非零返回码抛异常"""
        ...


class LocalExecutor:
    """本地子进程执行器（默认实现）

    stderr 合并进 stdout，保证失败时能把客户端输出原样带进异常信息。
    命令不存在时返回 127，与 shell 行为一致。
    """

    def execute(self, args: list[str], *, cwd: str | None = None) -> CommandResult:
        logger.debug("执行: %s (cwd=%s)", " ".join(args), cwd or ".")
        try:
            r = subprocess.run(
                args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                text=True, cwd=cwd, check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(returncode=127, output=str(e))
        return CommandResult(returncode=r.returncode, output=r.stdout or "")


_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor
