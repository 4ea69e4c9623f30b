"""Shell 命令执行工具 - 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
git 拉取、发布打标签以及外部生态回退安装都经由这里调用子进程。
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

from soso.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """错误诊断用的输出摘要：优先 stderr"""
        return (self.stderr.strip() or self.stdout.strip())[:500]


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 - 抽象子进程调用

    测试时可注入 mock 实现，无需 patch subprocess。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


class LocalExecutor:
    """本地命令执行器（默认实现）

    命令不存在时抛 FileNotFoundError，超时抛 subprocess.TimeoutExpired，由调用方转换。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else cmd
        logger.debug("执行: %s (cwd=%s)", " ".join(args), cwd)
        r = subprocess.run(
            args, capture_output=True, text=True,
            cwd=cwd, env=env, check=False, timeout=timeout,
        )
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor


def run_checked(
    executor: CommandExecutor,
    args: list[str], *, cwd: str = ".",
    label: str = "cmd",
    timeout: int | None = None,
) -> str:
    """执行命令，失败抛 ExecutionError，成功返回去除首尾空白的 stdout"""
    try:
        r = executor.execute(args, cwd=cwd, timeout=timeout)
    except FileNotFoundError as e:
        raise ExecutionError(f"{label}失败: 命令不存在 ({args[0]})") from e
    except subprocess.TimeoutExpired as e:
        raise ExecutionError(f"{label}超时（{timeout}秒）") from e
    if not r.success:
        raise ExecutionError(f"{label}失败 (rc={r.returncode}): {r.output}")
    return r.stdout.strip()
