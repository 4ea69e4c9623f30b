"""依赖包数据模型

数据类:
- VersionRecord: 单个已发布版本（依赖范围、拉取定位符、发布时间）
- PackageRecord: 包及其全部已发布版本
- RegistryView: 注册表只读视图（包名 -> PackageRecord）
- LockEntry: 锁文件中单个包的解析记录
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

LOCATOR_SEPARATOR = "#"


@dataclass(frozen=True)
class VersionRecord:
    """单个已发布版本的元信息"""

    version: str
    git_url: str = ""
    tag: str = ""
    dependencies: dict[str, str] = field(default_factory=dict)
    published_at: str = ""

    @property
    def locator(self) -> str:
        """拉取定位符: <git_url>#<tag>"""
        if not self.tag:
            return self.git_url
        return f"{self.git_url}{LOCATOR_SEPARATOR}{self.tag}"

    @classmethod
    def from_dict(cls, version: str, data: dict[str, Any]) -> VersionRecord:
        return cls(
            version=data.get("version", version),
            git_url=data.get("gitUrl", ""),
            tag=data.get("tag", f"v{version}"),
            dependencies=dict(data.get("dependencies") or {}),
            published_at=data.get("publishedAt", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "gitUrl": self.git_url,
            "tag": self.tag,
            "dependencies": dict(self.dependencies),
        }
        if self.published_at:
            data["publishedAt"] = self.published_at
        return data


def split_locator(locator: str) -> tuple[str, str]:
    """拆分定位符为 (url, ref)，无 ref 时 ref 为空串"""
    url, _, ref = locator.rpartition(LOCATOR_SEPARATOR)
    if not url:
        return locator, ""
    return url, ref


@dataclass
class PackageRecord:
    """注册表中的单个包"""

    name: str
    versions: dict[str, VersionRecord] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> PackageRecord:
        versions = {
            ver: VersionRecord.from_dict(ver, info or {})
            for ver, info in (data.get("versions") or {}).items()
        }
        return cls(name=data.get("name", name), versions=versions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "versions": {v: rec.to_dict() for v, rec in self.versions.items()},
        }


@dataclass
class RegistryView:
    """注册表视图: 包名 -> PackageRecord

    解析期间只读；仅发布流程通过 add_version 修改后保存。
    """

    packages: dict[str, PackageRecord] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.packages

    def get(self, name: str) -> PackageRecord | None:
        return self.packages.get(name)

    def version_ids(self, name: str) -> list[str]:
        """包的全部已发布版本号（未知包返回空列表）"""
        pkg = self.packages.get(name)
        return list(pkg.versions) if pkg else []

    def version(self, name: str, version: str) -> VersionRecord | None:
        pkg = self.packages.get(name)
        if pkg is None:
            return None
        return pkg.versions.get(version)

    def add_version(self, name: str, record: VersionRecord) -> None:
        pkg = self.packages.setdefault(name, PackageRecord(name=name))
        pkg.versions[record.version] = record

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryView:
        packages = {
            name: PackageRecord.from_dict(name, info or {})
            for name, info in (data.get("packages") or {}).items()
        }
        return cls(packages=packages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "packages": {name: pkg.to_dict() for name, pkg in self.packages.items()},
        }


@dataclass
class LockEntry:
    """锁文件中单个包的解析记录"""

    version: str
    resolved: str
    integrity: str
    dependencies: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """规范化投影: 依赖按名排序，空依赖省略"""
        data: dict[str, Any] = {
            "version": self.version,
            "resolved": self.resolved,
            "integrity": self.integrity,
        }
        if self.dependencies:
            data["dependencies"] = {
                k: self.dependencies[k] for k in sorted(self.dependencies)
            }
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LockEntry:
        return cls(
            version=data["version"],
            resolved=data.get("resolved", ""),
            integrity=data.get("integrity", ""),
            dependencies=dict(data.get("dependencies") or {}),
        )
