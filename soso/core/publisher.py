"""包发布

流程: 校验清单 → 检查 git 工作区 → 打标签 v<version> → 推送标签 → 写入注册表。
推送失败时删除本地标签回滚，注册表保持不变。
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from soso.core.config import Config, get_config
from soso.core.dep.git import GitClient
from soso.core.dep.models import VersionRecord
from soso.core.dep.registry import RegistryStore
from soso.core.exceptions import ExecutionError, PublishError
from soso.core.manifest import ProjectManifest

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Publisher:
    """把当前项目的一个版本登记到注册表"""

    def __init__(
        self,
        project_dir: str | Path,
        config: Config | None = None,
        registry: RegistryStore | None = None,
        git: GitClient | None = None,
    ) -> None:
        self.config = config or get_config()
        self.project_dir = Path(project_dir)
        self.registry = registry or RegistryStore(self.config.registry_file)
        self.git = git or GitClient()

    def publish(self) -> tuple[str, VersionRecord]:
        manifest = ProjectManifest.load(self.project_dir, self.config.manifest_file)
        manifest.validate_for_publish()
        name, version = manifest.name, manifest.version
        logger.info("发布 %s@%s ...", name, version)

        cwd = self.project_dir
        if not self.git.is_repository(cwd):
            raise PublishError("不是 git 仓库，请先执行 git init")
        if not self.git.is_clean(cwd):
            raise PublishError("工作区有未提交的改动，请先提交或暂存")
        remote = self.git.remote_url(cwd)
        if not remote:
            raise PublishError("未配置 git 远端，请执行 git remote add origin <url>")
        logger.info("git 远端: %s", remote)

        view = self.registry.load()
        if name not in view:
            logger.info("新增包: %s", name)
        elif view.version(name, version) is not None:
            raise PublishError(f"版本 {version} 已发布，请先修改 {manifest.path.name} 中的版本号")

        tag = f"v{version}"
        logger.info("创建标签: %s", tag)
        try:
            self.git.create_tag(cwd, tag, f"Release {version}")
        except ExecutionError as e:
            raise PublishError(f"创建标签失败: {e}") from e

        logger.info("推送标签到远端 ...")
        try:
            self.git.push_tags(cwd)
        except ExecutionError as e:
            try:
                self.git.delete_tag(cwd, tag)
            except ExecutionError:
                logger.warning("回滚本地标签失败: %s", tag)
            raise PublishError(f"推送标签失败: {e}") from e

        record = VersionRecord(
            version=version,
            git_url=remote,
            tag=tag,
            dependencies=manifest.dependencies,
            published_at=_utc_now(),
        )
        view.add_version(name, record)
        self.registry.save(view)
        logger.info("已发布 %s@%s -> %s", name, version, record.locator)
        return name, record
