"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
目录类字段为空时按 home_dir 推导:
    cache_dir     -> <home>/cache
    registry_file -> <home>/registry.json
home_dir 默认取 $SOSO_HOME，未设置时为 ~/.soso。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from soso.core.exceptions import ConfigError
from soso.utils.file_io import load_yaml

logger = logging.getLogger(__name__)

RESOLUTION_STRATEGIES = ("provisional", "fixed-point")
LOCK_MATCH_MODES = ("names", "ranges")
CORRUPT_LOCKFILE_POLICIES = ("error", "reresolve")


def default_home() -> str:
    return os.getenv("SOSO_HOME") or str(Path.home() / ".soso")


@dataclass
class Config:
    """全局配置"""

    # 目录
    home_dir: str = field(default_factory=default_home)
    cache_dir: str = ""
    registry_file: str = ""

    # 项目文件
    manifest_file: str = "package.json"
    lockfile_name: str = "soso-lock.json"
    modules_dir: str = "node_modules"

    # 拉取
    max_workers: int = 4
    fetch_timeout: int = 300

    # 解析
    resolution_strategy: str = "provisional"
    max_resolution_rounds: int = 10

    # 锁文件
    lock_match: str = "names"
    on_corrupt_lockfile: str = "error"

    # 外部生态回退安装，{spec} 替换为 name@range
    fallback_enabled: bool = True
    fallback_command: str = "npm install {spec} --save"

    # 放不到字段里的配置项
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.cache_dir:
            self.cache_dir = str(Path(self.home_dir) / "cache")
        if not self.registry_file:
            self.registry_file = str(Path(self.home_dir) / "registry.json")

    @classmethod
    def from_file(cls, path: str | Path) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        cfg.validate()
        return cfg

    def validate(self) -> None:
        """校验枚举类字段与数值范围，非法时抛 ConfigError"""
        checks = (
            ("resolution_strategy", self.resolution_strategy, RESOLUTION_STRATEGIES),
            ("lock_match", self.lock_match, LOCK_MATCH_MODES),
            ("on_corrupt_lockfile", self.on_corrupt_lockfile, CORRUPT_LOCKFILE_POLICIES),
        )
        for name, value, allowed in checks:
            if value not in allowed:
                raise ConfigError(
                    f"配置项 {name}={value!r} 无效，可选: {', '.join(allowed)}"
                )
        if self.max_workers < 1:
            raise ConfigError(f"max_workers 必须 >= 1: {self.max_workers}")
        if self.max_resolution_rounds < 1:
            raise ConfigError(
                f"max_resolution_rounds 必须 >= 1: {self.max_resolution_rounds}"
            )


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def default_config_path() -> Path:
    return Path(default_home()) / "config.yml"


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str | Path | None = None) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    path = path or default_config_path()
    _current = Config.from_file(path)
    logger.debug("配置已加载: %s", path)
    return _current


def reset_config() -> None:
    """清除全局配置（测试用）"""
    global _current  # noqa: PLW0603
    _current = None
