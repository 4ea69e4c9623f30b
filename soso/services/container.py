"""服务容器 - 统一依赖注入，消除 CLI 中的裸构造

同一容器内的注册表、缓存、拉取器等实例共享；项目级对象（安装器、锁文件等）
按项目目录现造，但复用容器里的共享实例。

用法:
    container = ServiceContainer()
    cache = container.cache                  # 懒加载
    installer = container.installer(".")     # 共享 cache / registry

    # 全局单例
    from soso.services.container import get_container
    get_container().registry.load()
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from soso.core.config import Config
    from soso.core.dep.cache import PackageCache
    from soso.core.dep.fetcher import FallbackInstaller, GitFetcher
    from soso.core.dep.git import GitClient
    from soso.core.dep.registry import RegistryStore
    from soso.core.installer import Installer
    from soso.core.lockfile import Lockfile
    from soso.core.publisher import Publisher
    from soso.core.updater import Updater

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器 - 每个实例持有一组共享的协作者"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from soso.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    # ---- 共享协作者 ----

    @property
    def registry(self) -> RegistryStore:
        if "registry" not in self._instances:
            from soso.core.dep.registry import RegistryStore
            store = RegistryStore(self._config.registry_file)
            store.init()
            self._instances["registry"] = store
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def cache(self) -> PackageCache:
        if "cache" not in self._instances:
            from soso.core.dep.cache import PackageCache
            self._instances["cache"] = PackageCache(
                self._config.cache_dir,
                manifest_file=self._config.manifest_file,
                nested_dir=self._config.modules_dir,
            )
        return self._instances["cache"]  # type: ignore[return-value]

    @property
    def fetcher(self) -> GitFetcher:
        if "fetcher" not in self._instances:
            from soso.core.dep.fetcher import GitFetcher
            self._instances["fetcher"] = GitFetcher(timeout=self._config.fetch_timeout)
        return self._instances["fetcher"]  # type: ignore[return-value]

    @property
    def fallback(self) -> FallbackInstaller:
        if "fallback" not in self._instances:
            from soso.core.dep.fetcher import FallbackInstaller
            self._instances["fallback"] = FallbackInstaller(self._config.fallback_command)
        return self._instances["fallback"]  # type: ignore[return-value]

    @property
    def git(self) -> GitClient:
        if "git" not in self._instances:
            from soso.core.dep.git import GitClient
            self._instances["git"] = GitClient()
        return self._instances["git"]  # type: ignore[return-value]

    # ---- 项目级对象 ----

    def installer(self, project_dir: str | Path) -> Installer:
        from soso.core.installer import Installer
        return Installer(
            project_dir,
            config=self._config,
            registry=self.registry,
            cache=self.cache,
            fetcher=self.fetcher,
            fallback=self.fallback,
        )

    def updater(self, project_dir: str | Path) -> Updater:
        from soso.core.updater import Updater
        return Updater(
            project_dir,
            config=self._config,
            registry=self.registry,
            installer=self.installer(project_dir),
        )

    def publisher(self, project_dir: str | Path) -> Publisher:
        from soso.core.publisher import Publisher
        return Publisher(
            project_dir, config=self._config, registry=self.registry, git=self.git,
        )

    def lockfile(self, project_dir: str | Path) -> Lockfile:
        from soso.core.lockfile import Lockfile
        return Lockfile(
            project_dir,
            filename=self._config.lockfile_name,
            match_mode=self._config.lock_match,
        )


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
