"""依赖安装流程

根依赖范围 → 解析（或沿用锁文件）→ 并行填充缓存 → 复制到 node_modules → 写锁文件。

核心逻辑:
  - 清单中的依赖按是否存在于注册表拆成两组，注册表外的交给外部生态回退安装
  - 锁文件有效且与当前依赖匹配时直接使用锁定版本，并校验完整性摘要
  - 缓存填充在有界线程池中并行进行；同一 (name, version) 由缓存保证只落盘一次
  - 任一包失败时等待其余包完成后统一报错，不写锁文件
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from soso.core.config import Config, get_config
from soso.core.dep.cache import VCS_DIRS, PackageCache
from soso.core.dep.fetcher import FallbackInstaller, Fetcher, GitFetcher
from soso.core.dep.models import LockEntry, RegistryView
from soso.core.dep.registry import RegistryStore
from soso.core.dep.resolver import Resolver
from soso.core.dep.semver import SemverOracle
from soso.core.exceptions import (
    CacheIOError,
    FallbackInstallError,
    InstallError,
    IntegrityMismatchError,
    LockfileError,
    SosoError,
    UnknownPackageError,
    ValidationError,
)
from soso.core.lockfile import Lockfile
from soso.core.manifest import ProjectManifest
from soso.utils.fs_tree import copy_tree, remove_tree

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """一次安装的结果"""

    installed: dict[str, LockEntry] = field(default_factory=dict)
    fallback: list[str] = field(default_factory=list)
    from_lockfile: bool = False

    @property
    def total(self) -> int:
        return len(self.installed) + len(self.fallback)


@dataclass
class InstallPlan:
    """待安装的版本表；来自锁文件时附带期望的完整性摘要"""

    versions: dict[str, str]
    integrity: dict[str, str] = field(default_factory=dict)
    from_lockfile: bool = False


def install_path(name: str, modules_dir: Path) -> Path:
    """包在 node_modules 中的安装路径，作用域包 @scope/name 嵌套一层"""
    parts = name.split("/")
    if any(p in ("", ".", "..") for p in parts) or len(parts) > 2:
        raise ValidationError(f"非法的包名: {name!r}")
    if len(parts) == 2 and not parts[0].startswith("@"):
        raise ValidationError(f"非法的包名: {name!r}")
    return modules_dir.joinpath(*parts)


class Installer:
    """项目依赖安装器"""

    def __init__(
        self,
        project_dir: str | Path,
        config: Config | None = None,
        registry: RegistryStore | None = None,
        cache: PackageCache | None = None,
        fetcher: Fetcher | None = None,
        fallback: FallbackInstaller | None = None,
    ) -> None:
        self.config = config or get_config()
        self.project_dir = Path(project_dir)
        self.registry = registry or RegistryStore(self.config.registry_file)
        self.cache = cache or PackageCache(
            self.config.cache_dir,
            manifest_file=self.config.manifest_file,
            nested_dir=self.config.modules_dir,
        )
        self.fetcher = fetcher or GitFetcher(timeout=self.config.fetch_timeout)
        self.fallback = fallback or FallbackInstaller(self.config.fallback_command)
        self.oracle = SemverOracle()
        self.lockfile = Lockfile(
            self.project_dir,
            filename=self.config.lockfile_name,
            match_mode=self.config.lock_match,
            oracle=self.oracle,
        )

    @property
    def modules_dir(self) -> Path:
        return self.project_dir / self.config.modules_dir

    def install(self, package: str | None = None) -> InstallReport:
        """安装清单中的全部依赖；指定 package 时先把它加入清单（范围 "*"）"""
        manifest = ProjectManifest.load(self.project_dir, self.config.manifest_file)
        if package:
            logger.info("安装 %s ...", package)
            if package not in manifest.dependencies:
                manifest.set_dependency(package, "*")
                manifest.save()
        else:
            logger.info("安装依赖 ...")

        dependencies = manifest.dependencies
        report = InstallReport()
        if not dependencies:
            logger.info("没有需要安装的依赖")
            return report

        view = self.registry.load()
        internal = {n: r for n, r in dependencies.items() if n in view}
        external = {n: r for n, r in dependencies.items() if n not in view}

        if internal:
            plan = self.plan(internal, view)
            report.from_lockfile = plan.from_lockfile
            report.installed = self._install_internal(plan, view)
            self.lockfile.write(report.installed)
            logger.info("已安装 %d 个 soso 包", len(report.installed))

        if external:
            logger.info("%d 个包不在 soso 注册表中，尝试外部安装", len(external))
            for name, version_range in external.items():
                if not self.config.fallback_enabled:
                    raise UnknownPackageError(name)
                if not self.fallback.install(name, version_range, self.project_dir):
                    raise FallbackInstallError(name)
                report.fallback.append(name)

        return report

    # ---- 规划 ----

    def plan(
        self, dependencies: dict[str, str], view: RegistryView,
    ) -> InstallPlan:
        """确定要安装的版本：锁文件有效且匹配时沿用锁定版本，否则重新解析"""
        record = self._read_lockfile()
        if record is not None and self.lockfile.matches(record, dependencies):
            entries = self.lockfile.entries(record)
            stale = sorted(
                n for n, e in entries.items() if view.version(n, e.version) is None
            )
            if not stale:
                logger.info("使用锁文件中的 %d 个锁定版本", len(entries))
                return InstallPlan(
                    versions={n: e.version for n, e in entries.items()},
                    integrity={n: e.integrity for n, e in entries.items() if e.integrity},
                    from_lockfile=True,
                )
            logger.warning("锁定版本已不在注册表中，重新解析: %s", ", ".join(stale))

        logger.info("解析依赖树 ...")
        resolver = Resolver(
            view,
            oracle=self.oracle,
            strategy=self.config.resolution_strategy,
            max_rounds=self.config.max_resolution_rounds,
        )
        resolved = resolver.resolve(dependencies)
        logger.debug("已解析 %d 个包", len(resolved))
        return InstallPlan(versions=resolved)

    def _read_lockfile(self) -> dict[str, Any] | None:
        """按 on_corrupt_lockfile 策略读取并校验锁文件"""
        try:
            record = self.lockfile.read()
            if not self.lockfile.validate(record):
                return None
        except LockfileError as e:
            if self.config.on_corrupt_lockfile == "error":
                raise
            logger.warning("忽略无效锁文件，重新解析: %s", e)
            return None
        return record

    # ---- 缓存填充 ----

    def populate(
        self, plan: dict[str, str], view: RegistryView,
    ) -> dict[str, tuple[Path, str]]:
        """并行确保每个 (name, version) 都在缓存中，返回 {name: (缓存路径, 完整性摘要)}"""
        items = sorted(plan.items())
        workers = max(1, min(self.config.max_workers, len(items)))
        results: dict[str, tuple[Path, str]] = {}
        failures: dict[str, str] = {}

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._materialize, name, version, view)
                for name, version in items
            ]
            for (name, version), future in zip(items, futures):
                try:
                    results[name] = future.result()
                except SosoError as e:
                    logger.error("获取失败: %s@%s: %s", name, version, e)
                    failures[name] = str(e)

        if failures:
            logger.warning(
                "缓存汇总: %d 成功, %d 失败 (%s)",
                len(results), len(failures), ", ".join(sorted(failures)),
            )
            raise InstallError(failures)
        return results

    def _materialize(self, name: str, version: str, view: RegistryView) -> tuple[Path, str]:
        cached = self.cache.get(name, version)
        if cached is not None:
            logger.debug("缓存命中: %s@%s", name, version)
            path = cached
        else:
            record = view.version(name, version)
            if record is None:
                raise UnknownPackageError(name)
            path = self._fetch_into_cache(name, version, record.locator)
        return path, self.cache.calculate_integrity(path)

    def _fetch_into_cache(self, name: str, version: str, locator: str) -> Path:
        """拉取到临时目录再写入缓存；临时目录无论成败都会清理"""
        try:
            tmp = Path(tempfile.mkdtemp(prefix="soso-"))
        except OSError as e:
            raise CacheIOError(tempfile.gettempdir(), str(e)) from e
        try:
            checkout = tmp / "src"
            logger.info("拉取 %s@%s", name, version)
            self.fetcher.fetch(locator, checkout)
            return self.cache.add(name, version, checkout)
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    # ---- 安装到项目 ----

    def _install_internal(
        self, plan: InstallPlan, view: RegistryView,
    ) -> dict[str, LockEntry]:
        materialized = self.populate(plan.versions, view)

        # 先校验全部摘要，任一不符时项目目录保持不变
        for name in sorted(plan.versions):
            want = plan.integrity.get(name)
            actual = materialized[name][1]
            if want and want != actual:
                raise IntegrityMismatchError(name, want, actual)

        installed: dict[str, LockEntry] = {}
        for name in sorted(plan.versions):
            version = plan.versions[name]
            source, integrity = materialized[name]
            self._copy_into_project(name, source)
            record = view.version(name, version)
            installed[name] = LockEntry(
                version=version,
                resolved=record.locator if record else "",
                integrity=integrity,
                dependencies=dict(record.dependencies) if record else {},
            )
            logger.debug("已安装 %s@%s", name, version)
        return installed

    def _copy_into_project(self, name: str, source: Path) -> None:
        target = install_path(name, self.modules_dir)
        try:
            remove_tree(target)
            copy_tree(source, target, skip=VCS_DIRS)
        except OSError as e:
            raise InstallError({name: f"复制到 {target} 失败: {e}"}) from e
