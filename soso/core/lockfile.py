"""锁文件管理

记录一次安装的精确解析结果，重复安装无需重新解析:

    {"lockfileVersion": 1,
     "packages": {"<name>": {"version": ..., "resolved": ..., "integrity": ...,
                             "dependencies": {...}}}}

包名与依赖名都按字典序输出，相同的安装集合无论插入顺序如何都得到逐字节相同的文件。

matches() 的两种模式:
  - names (默认): 仅比较包名集合（数量相同且覆盖全部当前依赖），不检测范围变化
  - ranges: 从当前依赖出发的锁定闭包中每条边都须满足范围，且不得含有闭包外的包
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from soso.core.dep.models import LockEntry
from soso.core.dep.semver import SemverOracle
from soso.core.exceptions import (
    ConfigError,
    InvalidRangeError,
    LockfileCorruptError,
    MalformedLockfileError,
    UnsupportedLockfileVersionError,
)
from soso.utils.file_io import atomic_write, dump_json, load_json

logger = logging.getLogger(__name__)

LOCKFILE_VERSION = 1
DEFAULT_LOCKFILE_NAME = "soso-lock.json"
MATCH_NAMES = "names"
MATCH_RANGES = "ranges"


def _entry_fields_valid(entry: dict[str, Any]) -> bool:
    """可选字段: resolved / integrity 为字符串，dependencies 为 str -> str 映射"""
    for key in ("resolved", "integrity"):
        if key in entry and not isinstance(entry[key], str):
            return False
    deps = entry.get("dependencies")
    if deps is None:
        return True
    return isinstance(deps, dict) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in deps.items()
    )


class Lockfile:
    """单个项目目录下的锁文件"""

    def __init__(
        self,
        project_dir: str | Path,
        filename: str = DEFAULT_LOCKFILE_NAME,
        match_mode: str = MATCH_NAMES,
        oracle: SemverOracle | None = None,
    ) -> None:
        if match_mode not in (MATCH_NAMES, MATCH_RANGES):
            raise ConfigError(f"未知的锁文件匹配模式: {match_mode}")
        self.project_dir = Path(project_dir)
        self.path = self.project_dir / filename
        self.match_mode = match_mode
        self.oracle = oracle or SemverOracle()

    def exists(self) -> bool:
        return self.path.is_file()

    # ---- 读写 ----

    @staticmethod
    def render(install_set: dict[str, LockEntry]) -> str:
        """生成规范化的锁文件文本"""
        record = {
            "lockfileVersion": LOCKFILE_VERSION,
            "packages": {
                name: install_set[name].to_dict() for name in sorted(install_set)
            },
        }
        return dump_json(record)

    def write(self, install_set: dict[str, LockEntry]) -> None:
        logger.debug("写入锁文件: %d 个包 -> %s", len(install_set), self.path)
        atomic_write(self.path, self.render(install_set))

    def read(self) -> dict[str, Any] | None:
        """读取锁文件，不存在返回 None，无法解析抛 LockfileCorruptError"""
        try:
            data = load_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
            raise LockfileCorruptError(f"锁文件无法解析 {self.path}: {e}") from e
        if data is None:
            return None
        if not isinstance(data, dict):
            raise LockfileCorruptError(
                f"锁文件内容不是对象 {self.path}: {type(data).__name__}"
            )
        return data

    def delete(self) -> None:
        if self.exists():
            self.path.unlink()
            logger.debug("已删除锁文件: %s", self.path)

    # ---- 校验 ----

    @staticmethod
    def validate(record: dict[str, Any] | None) -> bool:
        if record is None:
            return False

        version = record.get("lockfileVersion")
        if version != LOCKFILE_VERSION:
            raise UnsupportedLockfileVersionError(version)

        packages = record.get("packages")
        if not isinstance(packages, dict):
            raise MalformedLockfileError("锁文件格式无效: 缺少 packages")

        bad = [
            name for name, entry in packages.items()
            if not isinstance(entry, dict) or not isinstance(entry.get("version"), str)
        ]
        if bad:
            raise MalformedLockfileError(
                f"锁文件格式无效: 条目缺少 version ({', '.join(sorted(bad))})"
            )

        bad = [name for name, entry in packages.items() if not _entry_fields_valid(entry)]
        if bad:
            raise MalformedLockfileError(
                f"锁文件格式无效: resolved / integrity / dependencies 类型错误 "
                f"({', '.join(sorted(bad))})"
            )
        return True

    @staticmethod
    def get_package(record: dict[str, Any] | None, name: str) -> dict[str, Any] | None:
        if not record or not isinstance(record.get("packages"), dict):
            return None
        return record["packages"].get(name)

    @staticmethod
    def entries(record: dict[str, Any]) -> dict[str, LockEntry]:
        """把已校验的记录转换为 LockEntry 集合"""
        return {
            name: LockEntry.from_dict(entry)
            for name, entry in record["packages"].items()
        }

    def matches(self, record: dict[str, Any] | None, dependencies: dict[str, str]) -> bool:
        """锁文件是否与当前依赖声明一致"""
        if not record or not isinstance(record.get("packages"), dict):
            return False
        if self.match_mode == MATCH_RANGES:
            return self._matches_ranges(record["packages"], dependencies)

        locked = set(record["packages"])
        current = set(dependencies)
        if len(locked) != len(current):
            return False
        return current <= locked

    def _matches_ranges(
        self, packages: dict[str, Any], dependencies: dict[str, str],
    ) -> bool:
        """从当前根依赖出发遍历锁定闭包，每条边都须被满足，且锁文件中不得有闭包外的包"""
        reached: set[str] = set()
        stack = list(dependencies.items())
        while stack:
            name, version_range = stack.pop()
            entry = packages.get(name)
            if not isinstance(entry, dict):
                logger.debug("锁文件缺少 %s", name)
                return False
            try:
                ok = self.oracle.satisfies(str(entry.get("version", "")), version_range)
            except InvalidRangeError:
                return False
            if not ok:
                logger.debug(
                    "锁定版本 %s@%s 不满足 %s", name, entry.get("version"), version_range,
                )
                return False
            if name not in reached:
                reached.add(name)
                stack.extend((entry.get("dependencies") or {}).items())

        orphans = set(packages) - reached
        if orphans:
            logger.debug("锁文件含有当前依赖不再需要的包: %s", ", ".join(sorted(orphans)))
            return False
        return True
