"""CLI - 安装与升级命令"""

from __future__ import annotations

import click

from soso.cli import _project_dir, _svc, handle_errors, success


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(update)


@click.command()
@click.argument("package", required=False)
@handle_errors
def install(package: str | None) -> None:
    """安装依赖（指定 PACKAGE 时先加入清单）"""
    report = _svc().installer(_project_dir()).install(package)
    if report.total == 0:
        success("没有需要安装的依赖")
        return
    if report.installed:
        source = "锁文件" if report.from_lockfile else "解析结果"
        success(f"已安装 {len(report.installed)} 个 soso 包（来自{source}）")
        for name, entry in sorted(report.installed.items()):
            click.echo(f"  {name}@{entry.version}")
    for name in report.fallback:
        success(f"已通过外部生态安装 {name}")


@click.command()
@click.argument("package", required=False)
@click.option("--no-install", is_flag=True, help="只改写清单，不重新安装")
@handle_errors
def update(package: str | None, no_install: bool) -> None:
    """把依赖范围升级到注册表中的最新版本"""
    changes = _svc().updater(_project_dir()).update(package, reinstall=not no_install)
    if not changes:
        success("所有依赖均为最新")
        return
    for name, new_range in sorted(changes.items()):
        click.echo(f"  {name} -> {new_range}")
    success(f"已升级 {len(changes)} 个依赖")
