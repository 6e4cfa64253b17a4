"""CLI - 注册表查询 / 缓存 / 更新检查命令"""

from __future__ import annotations

import click

from ritual_grove.cli import _registry
from ritual_grove.core.registry import FilterOptions, RegistryEntry, UpdateChecker
from ritual_grove.utils.yaml_io import load_yaml


def register(group: click.Group) -> None:
    group.add_command(scan)
    group.add_command(list_packages)
    group.add_command(search)
    group.add_command(info)
    group.add_command(cache)
    group.add_command(updates)


def _echo_entries(entries: list[RegistryEntry]) -> None:
    if not entries:
        click.echo("没有匹配的包。")
        return
    for e in entries:
        click.echo(
            f"  {e.name:20s} {e.version:10s} [{e.source.value:8s}]  {e.description}"
        )


@click.command()
def scan() -> None:
    """扫描全部来源并汇报结果"""
    report = _registry(scan=False).scan()
    click.echo(f"已索引 {len(report.indexed)} 个包")
    for e in report.indexed:
        click.echo(f"  {e.name}@{e.version} ({e.source.value}) {e.path}")
    if report.skipped:
        click.echo(f"跳过 {len(report.skipped)} 项:")
        for s in report.skipped:
            click.echo(f"  {s.location}: {s.reason}")


@click.command(name="list")
@click.option("--tag", "tags", multiple=True, help="按标签过滤（可多次指定，任一命中）")
@click.option("--name", "name_pattern", default="", help="名称子串")
@click.option("--author", default="", help="作者子串")
def list_packages(tags: tuple[str, ...], name_pattern: str, author: str) -> None:
    """列出已索引的包（按名称排序）"""
    reg = _registry()
    opts = FilterOptions(tags=list(tags), name_pattern=name_pattern, author=author)
    _echo_entries(reg.sort_by_name(reg.filter(opts)))


@click.command()
@click.argument("query")
def search(query: str) -> None:
    """按名称 / 描述 / 标签搜索"""
    reg = _registry()
    _echo_entries(reg.sort_by_name(reg.search(query)))


@click.command()
@click.argument("name")
def info(name: str) -> None:
    """显示单个包的详细信息"""
    reg = _registry()
    entry = reg.get(name)
    for key, value in entry.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value)
        click.echo(f"{key:12s} {value}")

    deps = reg.load(name).dependencies
    if deps.rituals:
        click.echo(f"{'rituals':12s} {', '.join(deps.rituals)}")
    if deps.packages:
        click.echo(f"{'packages':12s} {', '.join(deps.packages)}")
    if deps.database and deps.database.required:
        click.echo(f"{'database':12s} {', '.join(deps.database.types)}")


@click.group()
def cache() -> None:
    """缓存管理"""


@cache.command(name="size")
def cache_size() -> None:
    """缓存占用字节数"""
    click.echo(str(_registry(scan=False).cache_size()))


@cache.command(name="path")
def cache_path() -> None:
    """缓存根目录"""
    click.echo(str(_registry(scan=False).cache_dir))


@cache.command(name="clear")
@click.option("--embedded", is_flag=True, help="只清理内嵌包缓存")
def cache_clear(embedded: bool) -> None:
    """清理缓存"""
    reg = _registry(scan=False)
    if embedded:
        reg.clear_embedded_cache()
        click.echo("内嵌包缓存已清空")
    else:
        reg.clear_cache()
        click.echo(f"缓存已清空: {reg.cache_dir}")


@click.command()
@click.argument("installed_file", type=click.Path(exists=True, dir_okay=False))
def updates(installed_file: str) -> None:
    """对照 {包名: 已安装版本} YAML 文件检查可用更新"""
    installed = {str(k): str(v) for k, v in load_yaml(installed_file).items()}
    notes = UpdateChecker(_registry()).notifications(installed)
    if not notes:
        click.echo("全部为最新版本。")
        return
    for n in notes:
        click.echo(n.message)
