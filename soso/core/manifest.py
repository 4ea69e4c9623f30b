"""项目清单（package.json）读写"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from soso.core.dep.semver import SemverOracle
from soso.core.exceptions import ManifestError, ValidationError
from soso.utils.file_io import load_json, save_json

logger = logging.getLogger(__name__)

PACKAGE_NAME_RE = re.compile(r"^(@[a-z0-9-]+/)?[a-z0-9-]+$")


@dataclass
class ProjectManifest:
    """项目清单: 保留原始字段，只暴露 soso 关心的几个"""

    path: Path
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, project_dir: str | Path, filename: str = "package.json") -> ProjectManifest:
        path = Path(project_dir) / filename
        if not path.is_file():
            raise ManifestError(f"当前目录下没有 {filename}: {path.parent}")
        try:
            data = load_json(path)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
            raise ManifestError(f"{path} 无法解析: {e}") from e
        if not isinstance(data, dict):
            raise ManifestError(f"{path} 内容不是对象")
        return cls(path=path, data=data)

    @property
    def name(self) -> str:
        return str(self.data.get("name", ""))

    @property
    def version(self) -> str:
        return str(self.data.get("version", ""))

    @property
    def dependencies(self) -> dict[str, str]:
        return dict(self.data.get("dependencies") or {})

    def set_dependency(self, name: str, version_range: str) -> None:
        self.data.setdefault("dependencies", {})[name] = version_range

    def save(self) -> None:
        save_json(self.path, self.data)
        logger.debug("已保存清单: %s", self.path)

    def validate_for_publish(self, oracle: SemverOracle | None = None) -> None:
        """发布前校验 name / version"""
        oracle = oracle or SemverOracle()
        for required in ("name", "version"):
            if not self.data.get(required):
                raise ValidationError(f"{self.path.name} 缺少必填字段: {required}")
        if not PACKAGE_NAME_RE.match(self.name):
            raise ValidationError(
                f"无效的包名 {self.name!r}: 只能使用小写字母、数字和连字符，"
                "作用域包形如 @scope/name"
            )
        if not oracle.is_valid(self.version):
            raise ValidationError(
                f"无效的版本号 {self.version!r}: 必须符合语义化版本（如 1.2.3）"
            )
