"""soso 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
业务异常统一转换为带错误码的 ClickException，退出码为 1。
"""

from __future__ import annotations

import functools
import os
from pathlib import Path
from typing import Any, Callable

import click

from soso import __version__
from soso.core.config import init_config
from soso.core.exceptions import SosoError
from soso.services.container import ServiceContainer, get_container, reset_container
from soso.utils.logger import setup_logging


def _svc() -> ServiceContainer:
    """获取全局服务容器的快捷方式"""
    return get_container()


def _project_dir() -> Path:
    ctx = click.get_current_context()
    root = ctx.find_root()
    return Path((root.obj or {}).get("project_dir", "."))


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把 SosoError 转为 ClickException"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except SosoError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


def success(message: str) -> None:
    click.echo(f"{click.style('✓', fg='green')} {message}")


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", "-d", is_flag=True, help="输出调试日志")
@click.option("--config", "config_path", default=None, help="配置文件路径（默认 ~/.soso/config.yml）")
@click.option("--project-dir", "-C", default=".", help="项目目录")
@click.pass_context
def main(ctx: click.Context, debug: bool, config_path: str | None, project_dir: str) -> None:
    """soso - 基于 Git 的私有包管理器"""
    level = "DEBUG" if debug else os.getenv("SOSO_LOG_LEVEL", "WARNING")
    setup_logging(level=level, json_output=os.getenv("SOSO_LOG_JSON", "") == "1")
    try:
        init_config(config_path)
    except SosoError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e
    reset_container()
    ctx.ensure_object(dict)
    ctx.obj["project_dir"] = project_dir


# 注册各领域子命令
from soso.cli.cmd_install import register as _reg_install  # noqa: E402
from soso.cli.cmd_publish import register as _reg_publish  # noqa: E402
from soso.cli.cmd_cache import register as _reg_cache  # noqa: E402
from soso.cli.cmd_lock import register as _reg_lock  # noqa: E402

_reg_install(main)
_reg_publish(main)
_reg_cache(main)
_reg_lock(main)
