"""依赖解析、缓存与拉取

- models.py: 注册表与锁文件数据模型
- semver.py: 版本范围判定
- registry.py: 注册表加载 / 保存
- resolver.py: 两遍式依赖解析
- cache.py: 内容寻址包缓存
- fetcher.py: git 拉取与外部生态回退安装
- git.py: 发布用 git 操作
"""

from soso.core.dep.cache import PackageCache
from soso.core.dep.fetcher import FallbackInstaller, GitFetcher
from soso.core.dep.models import LockEntry, PackageRecord, RegistryView, VersionRecord
from soso.core.dep.registry import RegistryStore
from soso.core.dep.resolver import Resolver
from soso.core.dep.semver import SemverOracle

__all__ = [
    "FallbackInstaller",
    "GitFetcher",
    "LockEntry",
    "PackageCache",
    "PackageRecord",
    "RegistryStore",
    "RegistryView",
    "Resolver",
    "SemverOracle",
    "VersionRecord",
]
