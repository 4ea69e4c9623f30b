"""CLI - 缓存管理"""

from __future__ import annotations

import click

from soso.cli import _svc, handle_errors, success


def register(group: click.Group) -> None:
    group.add_command(cache_group)


@click.group(name="cache")
def cache_group() -> None:
    """包缓存管理"""


@cache_group.command(name="clean")
@handle_errors
def cache_clean() -> None:
    """清空包缓存"""
    cache = _svc().cache
    stats = cache.get_stats()
    cache.clear()
    success(f"已清空缓存（{stats.entry_count} 个包, {stats.size_mb:.2f} MB）")


@cache_group.command(name="stats")
@handle_errors
def cache_stats() -> None:
    """显示缓存统计"""
    cache = _svc().cache
    stats = cache.get_stats()
    click.echo(f"目录: {cache.cache_dir}")
    click.echo(f"包数: {stats.entry_count}")
    click.echo(f"大小: {stats.size_mb:.2f} MB")
