"""注册表持久化

职责:
- 从 JSON 文件加载 RegistryView（文件不存在时返回空注册表）
- 原子写回（仅发布流程调用）

文件格式:
    {"packages": {"<name>": {"name": ..., "versions": {"<ver>": {
        "version": ..., "gitUrl": ..., "tag": ..., "dependencies": {...},
        "publishedAt": ...}}}}}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from soso.core.dep.models import RegistryView
from soso.core.exceptions import RegistryError
from soso.utils.file_io import load_json, save_json

logger = logging.getLogger(__name__)


class RegistryStore:
    """注册表存储 - 加载与保存 registry.json"""

    def __init__(self, registry_path: str | Path) -> None:
        self.registry_path = Path(registry_path)

    def load(self) -> RegistryView:
        if not self.registry_path.exists():
            logger.debug("注册表文件不存在，使用空注册表: %s", self.registry_path)
            return RegistryView()

        try:
            data = load_json(self.registry_path)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError, OSError) as e:
            raise RegistryError(f"加载注册表失败 {self.registry_path}: {e}") from e
        if not isinstance(data, dict):
            raise RegistryError(f"注册表格式无效: {self.registry_path}")

        view = RegistryView.from_dict(data)
        logger.debug("已加载注册表: %d 个包", len(view.packages))
        return view

    def save(self, view: RegistryView) -> None:
        try:
            save_json(self.registry_path, view.to_dict())
        except OSError as e:
            raise RegistryError(f"保存注册表失败 {self.registry_path}: {e}") from e
        logger.debug("注册表已保存: %s", self.registry_path)

    def init(self) -> None:
        """首次使用时创建空注册表文件"""
        if not self.registry_path.exists():
            self.save(RegistryView())
