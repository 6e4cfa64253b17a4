"""CLI - 依赖校验 / 锁文件命令"""

from __future__ import annotations

from pathlib import Path

import click

from ritual_grove.cli import _registry
from ritual_grove.core.exceptions import PackageNotFoundError
from ritual_grove.core.lockfile import LOCK_FILE, LockFile
from ritual_grove.core.manifest import Manifest, load_manifest
from ritual_grove.core.registry import Registry
from ritual_grove.core.resolver import DependencyResolver, InstallPlan


def register(group: click.Group) -> None:
    group.add_command(deps)


def _plan(manifest: Manifest, reg: Registry) -> tuple[InstallPlan, list[str]]:
    """把已索引的兄弟模板清单一并加入图中，返回计划和缺失的依赖"""
    resolver = DependencyResolver()
    missing = resolver.missing_dependencies(manifest, reg)
    pending = list(manifest.dependencies.rituals)
    seen = {manifest.name}
    while pending:
        name = pending.pop(0)
        if name in seen:
            continue
        seen.add(name)
        try:
            sibling = reg.load(name)
        except PackageNotFoundError:
            continue
        resolver.build_graph(sibling)
        pending.extend(sibling.dependencies.rituals)
    return resolver.plan(manifest), missing


@click.group()
def deps() -> None:
    """依赖解析"""


@deps.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False))
def check(path: str) -> None:
    """校验 PATH 处包的依赖并输出安装顺序"""
    reg = _registry()
    manifest = load_manifest(path)
    plan, missing = _plan(manifest, reg)

    click.echo(f"安装顺序: {' -> '.join(plan.order)}")
    for d in plan.dependencies:
        version = f" {d.version}" if d.version else ""
        click.echo(f"  [{d.kind.value:8s}] {d.name}{version}")
    if missing:
        click.echo(f"注册表中缺少: {', '.join(missing)}")


@deps.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False))
def lock(path: str) -> None:
    """解析 PATH 处包的依赖并写入 ritual.lock"""
    reg = _registry()
    manifest = load_manifest(path)
    plan, missing = _plan(manifest, reg)
    if missing:
        raise PackageNotFoundError(f"无法锁定，注册表中缺少: {', '.join(missing)}")
    target = Path(path) / LOCK_FILE
    LockFile.from_plan(manifest, plan, reg).save(target)
    click.echo(f"已写入 {target}")
