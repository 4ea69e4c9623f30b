"""git 操作封装（发布流程使用）

所有调用都经由 CommandExecutor，失败统一抛 ExecutionError。
"""

from __future__ import annotations

import logging
from pathlib import Path

from soso.core.exceptions import ExecutionError
from soso.utils.shell import CommandExecutor, get_executor, run_checked

logger = logging.getLogger(__name__)


class GitClient:
    """工作目录级 git 命令"""

    def __init__(self, executor: CommandExecutor | None = None) -> None:
        self.executor = executor or get_executor()

    def _git(self, cwd: Path, *args: str, label: str = "git") -> str:
        return run_checked(self.executor, ["git", *args], cwd=str(cwd), label=label)

    def is_repository(self, cwd: Path) -> bool:
        return (Path(cwd) / ".git").exists()

    def is_clean(self, cwd: Path) -> bool:
        return self._git(cwd, "status", "--porcelain", label="git status") == ""

    def remote_url(self, cwd: Path, remote: str = "origin") -> str | None:
        try:
            return self._git(cwd, "remote", "get-url", remote, label="git remote") or None
        except ExecutionError:
            logger.debug("未配置远端 %s: %s", remote, cwd)
            return None

    def create_tag(self, cwd: Path, tag: str, message: str) -> None:
        self._git(cwd, "tag", "-a", tag, "-m", message, label="创建标签")

    def delete_tag(self, cwd: Path, tag: str) -> None:
        self._git(cwd, "tag", "-d", tag, label="删除标签")

    def push_tags(self, cwd: Path) -> None:
        self._git(cwd, "push", "--tags", label="推送标签")
