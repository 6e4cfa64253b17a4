"""ritual-grove 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import os

import click

from ritual_grove import __version__
from ritual_grove.core.config import DEFAULT_CONFIG_FILE, get_config, init_config
from ritual_grove.core.exceptions import GroveError
from ritual_grove.core.registry import Registry
from ritual_grove.utils.logger import setup_logging


class _GroveGroup(click.Group):
    """GroveError 统一输出为一行中文错误并以 1 退出"""

    def invoke(self, ctx: click.Context) -> object:
        try:
            return super().invoke(ctx)
        except GroveError as e:
            click.echo(f"错误: {e}", err=True)
            ctx.exit(1)


def _registry(scan: bool = True) -> Registry:
    """按当前配置构造注册表，默认先扫描一次"""
    ctx = click.get_current_context()
    reg = Registry(config=get_config(), cache_dir=ctx.find_root().obj.get("cache_dir"))
    if scan:
        reg.scan()
    return reg


@click.group(cls=_GroveGroup)
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default=DEFAULT_CONFIG_FILE, help="配置文件路径")
@click.option("--cache-dir", default=None, help="覆盖配置中的缓存目录")
@click.pass_context
def main(ctx: click.Context, config_path: str, cache_dir: str | None) -> None:
    """ritual-grove - 项目模板包注册表与依赖解析"""
    cfg = init_config(config_path)
    setup_logging(
        level=os.getenv("RITUAL_GROVE_LOG_LEVEL", cfg.log_level),
        json_output=os.getenv("RITUAL_GROVE_LOG_JSON", "") == "1" or cfg.log_json,
    )
    ctx.obj = {"cache_dir": cache_dir}


# 注册各领域子命令
from ritual_grove.cli.cmd_registry import register as _reg_registry  # noqa: E402
from ritual_grove.cli.cmd_deps import register as _reg_deps  # noqa: E402

_reg_registry(main)
_reg_deps(main)
