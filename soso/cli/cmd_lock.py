"""CLI - 锁文件检查"""

from __future__ import annotations

import click

from soso.cli import _project_dir, _svc, handle_errors, success
from soso.core.manifest import ProjectManifest


def register(group: click.Group) -> None:
    group.add_command(lock_group)


@click.group(name="lock")
def lock_group() -> None:
    """锁文件管理"""


@lock_group.command(name="check")
@handle_errors
def lock_check() -> None:
    """校验锁文件并检查是否与清单一致"""
    svc = _svc()
    project = _project_dir()
    lockfile = svc.lockfile(project)
    record = lockfile.read()
    if not lockfile.validate(record):
        click.echo(f"没有锁文件: {lockfile.path}")
        raise SystemExit(1)

    manifest = ProjectManifest.load(project, svc.config.manifest_file)
    view = svc.registry.load()
    internal = {n: r for n, r in manifest.dependencies.items() if n in view}
    if not lockfile.matches(record, internal):
        click.echo(f"锁文件与清单不一致（匹配模式: {lockfile.match_mode}）")
        raise SystemExit(1)
    success(f"锁文件有效，共 {len(record['packages'])} 个包")


@lock_group.command(name="remove")
@handle_errors
def lock_remove() -> None:
    """删除锁文件"""
    lockfile = _svc().lockfile(_project_dir())
    lockfile.delete()
    success(f"已删除 {lockfile.path.name}")
