"""CLI - 发布与包信息"""

from __future__ import annotations

import click

from soso.cli import _project_dir, _svc, handle_errors, success
from soso.core.dep.semver import SemverOracle


def register(group: click.Group) -> None:
    group.add_command(publish)
    group.add_command(info)


@click.command()
@handle_errors
def publish() -> None:
    """把当前项目版本打标签并登记到注册表"""
    name, record = _svc().publisher(_project_dir()).publish()
    success(f"已发布 {name}@{record.version}")
    click.echo(f"  地址: {record.locator}")


@click.command()
@click.argument("name")
@handle_errors
def info(name: str) -> None:
    """显示包的全部已发布版本"""
    view = _svc().registry.load()
    pkg = view.get(name)
    if pkg is None:
        click.echo(f"{click.style('✗', fg='red')} 包不存在: {name}", err=True)
        click.echo("\n可用的包:")
        names = sorted(view.packages)
        for n in names or ["(无)"]:
            click.echo(f"  {n}")
        raise SystemExit(1)

    click.echo()
    click.echo(click.style(pkg.name, fg="cyan", bold=True))
    click.echo()
    click.echo(click.style("版本:", bold=True))

    versions = SemverOracle().sort_desc(list(pkg.versions))
    for i, version in enumerate(versions):
        record = pkg.versions[version]
        latest = click.style(" (latest)", fg="green") if i == 0 else ""
        click.echo(f"  {click.style(version, fg='yellow')}{latest}")
        click.echo(f"    Git: {record.locator}")
        if record.published_at:
            click.echo(f"    发布时间: {record.published_at}")
        if record.dependencies:
            click.echo("    依赖:")
            for dep, dep_range in record.dependencies.items():
                click.echo(f"      {dep}: {dep_range}")
        click.echo()
