"""依赖升级

若注册表中的最新版本高于当前范围能匹配到的最高版本，把范围改写为 ^<最新版本>，
保存清单后重新安装。注册表外的包跳过。
"""

from __future__ import annotations

import logging
from pathlib import Path

from soso.core.config import Config, get_config
from soso.core.dep.models import RegistryView
from soso.core.dep.registry import RegistryStore
from soso.core.dep.semver import SemverOracle
from soso.core.exceptions import ManifestError
from soso.core.installer import Installer
from soso.core.manifest import ProjectManifest

logger = logging.getLogger(__name__)


class Updater:
    """依赖范围升级器"""

    def __init__(
        self,
        project_dir: str | Path,
        config: Config | None = None,
        registry: RegistryStore | None = None,
        installer: Installer | None = None,
    ) -> None:
        self.config = config or get_config()
        self.project_dir = Path(project_dir)
        self.registry = registry or RegistryStore(self.config.registry_file)
        self._installer = installer
        self.oracle = SemverOracle()

    @property
    def installer(self) -> Installer:
        if self._installer is None:
            self._installer = Installer(
                self.project_dir, config=self.config, registry=self.registry,
            )
        return self._installer

    def find_latest_version(
        self, name: str, version_range: str, view: RegistryView,
    ) -> str | None:
        """有更新时返回最新版本，否则 None"""
        pkg = view.get(name)
        if pkg is None:
            logger.warning("注册表中不存在 %s，跳过", name)
            return None

        versions = self.oracle.sort_desc(list(pkg.versions))
        if not versions:
            return None
        current = self.oracle.max_satisfying(versions, version_range)
        latest = versions[0]
        if current and self.oracle.newer(latest, current):
            return latest
        return None

    def update(self, package: str | None = None, reinstall: bool = True) -> dict[str, str]:
        """升级依赖范围，返回 {包名: 新范围}"""
        manifest = ProjectManifest.load(self.project_dir, self.config.manifest_file)
        dependencies = manifest.dependencies
        if not dependencies:
            logger.info("没有需要升级的依赖")
            return {}

        if package:
            if package not in dependencies:
                raise ManifestError(f"依赖中不存在 {package}")
            targets = {package: dependencies[package]}
        else:
            targets = dependencies

        view = self.registry.load()
        changes: dict[str, str] = {}
        for name, version_range in targets.items():
            latest = self.find_latest_version(name, version_range, view)
            if latest is None:
                logger.debug("%s 已是最新", name)
                continue
            changes[name] = f"^{latest}"
            manifest.set_dependency(name, changes[name])
            logger.info("升级 %s: %s -> %s", name, version_range, changes[name])

        if changes:
            manifest.save()
            if reinstall:
                logger.info("重新安装依赖 ...")
                self.installer.install()
        return changes
