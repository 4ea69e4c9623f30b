"""依赖包拉取器

职责:
- 按定位符 "<git_url>#<tag>" 浅克隆到临时目标目录（GitFetcher）
- 注册表外的包交给外部生态安装（FallbackInstaller）

拉取本身不碰缓存：由安装流程在临时目录拉取完成后调用 PackageCache.add。
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from soso.core.dep.models import split_locator
from soso.core.exceptions import FetchFailedError
from soso.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """拉取协议: 把定位符指向的文件树落到 destination"""

    def fetch(self, locator: str, destination: Path) -> None:
        ...


class GitFetcher:
    """通过 git 浅克隆指定 tag"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        timeout: int | None = None,
    ) -> None:
        self.executor = executor or get_executor()
        self.timeout = timeout

    def fetch(self, locator: str, destination: Path) -> None:
        url, ref = split_locator(locator)
        if not url:
            raise FetchFailedError(locator, "定位符缺少仓库地址")

        args = ["git", "clone", "--depth", "1"]
        if ref:
            args += ["--branch", ref]
        args += [url, str(destination)]

        logger.debug("拉取 %s -> %s", locator, destination)
        try:
            r = self.executor.execute(args, timeout=self.timeout)
        except FileNotFoundError as e:
            raise FetchFailedError(locator, "git 未安装或不在 PATH 中") from e
        except subprocess.TimeoutExpired as e:
            raise FetchFailedError(locator, f"超时（{self.timeout}秒）") from e
        if not r.success:
            raise FetchFailedError(locator, r.output or f"git 退出码 {r.returncode}")


class FallbackInstaller:
    """外部生态回退安装 - 只关心成功与否"""

    def __init__(
        self,
        command_template: str = "npm install {spec} --save",
        executor: CommandExecutor | None = None,
    ) -> None:
        self.command_template = command_template
        self.executor = executor or get_executor()

    def install(self, name: str, version_range: str, cwd: Path) -> bool:
        spec = f"{name}@{version_range}"
        cmd = self.command_template.replace("{spec}", spec)
        logger.info("尝试外部安装: %s", spec)
        try:
            r = self.executor.execute(cmd, cwd=str(cwd))
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            logger.error("外部安装失败 %s: %s", spec, e)
            return False
        if not r.success:
            logger.error("外部安装失败 %s: %s", spec, r.output)
            return False
        logger.info("已通过外部生态安装 %s", spec)
        return True
