"""内容寻址的包缓存

目录布局:
    <cache_dir>/<sha256hex("name@version")>/package/...

缓存策略:
  - 以 (name, version) 派生的内容键定位条目；内容键只负责定位，
    完整性摘要负责校验内容
  - 条目内存在清单文件（默认 package.json）才视为存在，缺清单一律当作不存在
  - 写入先复制到缓存根目录下的临时目录，再原子 rename 为正式条目，
    读方永远看不到写了一半的条目；同进程内按内容键分条加锁，跨进程以 rename 决胜负
  - 条目创建后不可变，重复 add 为空操作；只有 clear() 会删除
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path

from soso.core.exceptions import CacheIOError
from soso.utils.fs_tree import copy_tree, remove_tree, tree_size

logger = logging.getLogger(__name__)

ENTRY_DIR = "package"
TMP_PREFIX = ".tmp-"
VCS_DIRS = (".git",)
INTEGRITY_ALGORITHM = "sha256"
_CHUNK = 64 * 1024
# 写入锁按内容键分条，锁的数量固定，不随缓存条目增长
LOCK_STRIPES = 64


@dataclass
class CacheStats:
    entry_count: int
    total_bytes: int

    @property
    def size_mb(self) -> float:
        return self.total_bytes / (1024 * 1024)


class PackageCache:
    """包缓存管理器"""

    def __init__(
        self,
        cache_dir: str | Path,
        manifest_file: str = "package.json",
        nested_dir: str = "node_modules",
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.manifest_file = manifest_file
        self.nested_dir = nested_dir
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]
        self._ensure_root()

    def _ensure_root(self) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheIOError(str(self.cache_dir), str(e)) from e

    def _key_lock(self, key: str) -> threading.Lock:
        return self._locks[int(key[:8], 16) % LOCK_STRIPES]

    # ---- 定位 ----

    @staticmethod
    def content_key(name: str, version: str) -> str:
        return hashlib.sha256(f"{name}@{version}".encode()).hexdigest()

    def entry_root(self, name: str, version: str) -> Path:
        return self.cache_dir / self.content_key(name, version)

    def entry_path(self, name: str, version: str) -> Path:
        return self.entry_root(name, version) / ENTRY_DIR

    # ---- 查询 ----

    def has(self, name: str, version: str) -> bool:
        return (self.entry_path(name, version) / self.manifest_file).is_file()

    def get(self, name: str, version: str) -> Path | None:
        if not self.has(name, version):
            return None
        return self.entry_path(name, version)

    # ---- 写入 ----

    def add(self, name: str, version: str, source: str | Path) -> Path:
        """把 source 目录树写入缓存，返回条目路径（幂等）"""
        src = Path(source)
        if not (src / self.manifest_file).is_file():
            raise CacheIOError(str(src), f"源目录缺少清单文件 {self.manifest_file}")

        key = self.content_key(name, version)
        target = self.entry_path(name, version)
        with self._key_lock(key):
            if self.has(name, version):
                logger.debug("缓存已存在，跳过写入: %s@%s", name, version)
                return target

            logger.debug("写入缓存: %s@%s -> %s", name, version, target)
            try:
                staging = Path(tempfile.mkdtemp(prefix=f"{TMP_PREFIX}{key[:12]}-", dir=self.cache_dir))
            except OSError as e:
                raise CacheIOError(str(self.cache_dir), str(e)) from e

            try:
                copy_tree(src, staging / ENTRY_DIR, skip=VCS_DIRS)
                self._promote(staging, name, version)
            except OSError as e:
                raise CacheIOError(str(getattr(e, "filename", None) or target), str(e)) from e
            finally:
                if staging.exists():
                    remove_tree(staging)
        return target

    def _promote(self, staging: Path, name: str, version: str) -> None:
        """把暂存目录原子地变成正式条目"""
        final = self.entry_root(name, version)
        if final.exists() and not self.has(name, version):
            logger.warning("发现残缺缓存条目，替换: %s", final)
            trash = Path(tempfile.mkdtemp(prefix=TMP_PREFIX, dir=self.cache_dir))
            os.rename(final, trash / "stale")
            remove_tree(trash)
        try:
            os.rename(staging, final)
        except OSError:
            if self.has(name, version):
                # 其他进程抢先完成了同一条目
                logger.debug("缓存条目已被并发写入: %s@%s", name, version)
                return
            raise

    # ---- 校验 ----

    def calculate_integrity(self, path: str | Path) -> str:
        """计算目录树的完整性摘要 "sha256-<base64>"

        按名字排序的先序遍历，依次喂入条目名与文件内容；
        任意层级名为 nested_dir 的子目录整体跳过。
        """
        hasher = hashlib.new(INTEGRITY_ALGORITHM)
        root = Path(path)
        try:
            stack = [iter(self._sorted_entries(root))]
            while stack:
                entry = next(stack[-1], None)
                if entry is None:
                    stack.pop()
                    continue
                if entry.name == self.nested_dir:
                    continue
                hasher.update(entry.name.encode("utf-8"))
                if entry.is_dir(follow_symlinks=False):
                    stack.append(iter(self._sorted_entries(Path(entry.path))))
                else:
                    self._feed_file(hasher, Path(entry.path))
        except OSError as e:
            raise CacheIOError(str(getattr(e, "filename", None) or root), str(e)) from e

        digest = base64.b64encode(hasher.digest()).decode("ascii")
        return f"{INTEGRITY_ALGORITHM}-{digest}"

    @staticmethod
    def _sorted_entries(directory: Path) -> list[os.DirEntry]:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda e: e.name)

    @staticmethod
    def _feed_file(hasher: "hashlib._Hash", path: Path) -> None:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK), b""):
                hasher.update(chunk)

    # ---- 维护 ----

    def _entries(self) -> list[Path]:
        with os.scandir(self.cache_dir) as it:
            return [
                Path(e.path) for e in it
                if e.is_dir(follow_symlinks=False) and not e.name.startswith(TMP_PREFIX)
            ]

    def clear(self) -> None:
        """删除并重建缓存根目录"""
        logger.debug("清空缓存: %s", self.cache_dir)
        try:
            remove_tree(self.cache_dir)
        except OSError as e:
            raise CacheIOError(str(getattr(e, "filename", None) or self.cache_dir), str(e)) from e
        self._ensure_root()

    def get_stats(self) -> CacheStats:
        try:
            entries = self._entries()
            total = sum(tree_size(p) for p in entries)
        except OSError as e:
            raise CacheIOError(str(getattr(e, "filename", None) or self.cache_dir), str(e)) from e
        return CacheStats(entry_count=len(entries), total_bytes=total)
