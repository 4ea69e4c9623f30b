"""统一异常体系

所有业务异常继承 SosoError，替代散落的 ValueError / RuntimeError。
CLI 层据此输出带错误码的友好提示；每个异常携带结构化上下文（包名、版本范围、
可用版本、路径），足以渲染可操作的诊断信息。
"""

from __future__ import annotations


class SosoError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(SosoError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(SosoError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ExecutionError(SosoError):
    """外部命令执行失败"""

    code = "EXECUTION_ERROR"


class ManifestError(SosoError):
    """项目清单（package.json）缺失或无效"""

    code = "MANIFEST_ERROR"


class RegistryError(SosoError):
    """注册表文件无法读取或解析"""

    code = "REGISTRY_ERROR"


# =========================================================================
# 依赖解析
# =========================================================================

class ResolutionError(SosoError):
    """依赖解析失败（整体中止，不返回部分结果）"""

    code = "RESOLUTION_ERROR"


class UnknownPackageError(ResolutionError):
    """注册表中没有该包"""

    code = "UNKNOWN_PACKAGE"

    def __init__(self, name: str) -> None:
        super().__init__(f"注册表中不存在依赖包: {name}")
        self.name = name


class UnsatisfiableRangeError(ResolutionError):
    """没有任何已发布版本满足单个版本范围"""

    code = "UNSATISFIABLE_RANGE"

    def __init__(self, name: str, version_range: str, available: list[str]) -> None:
        super().__init__(
            f"{name} 没有满足 {version_range} 的版本。"
            f"可用版本: {', '.join(available) or '(无)'}"
        )
        self.name = name
        self.version_range = version_range
        self.available = available


class ConflictingRangesError(ResolutionError):
    """同一个包累积的版本范围没有交集"""

    code = "CONFLICTING_RANGES"

    def __init__(self, name: str, ranges: list[str], available: list[str]) -> None:
        super().__init__(
            f"无法解析 {name}: 版本范围冲突 {', '.join(ranges)}。"
            f"可用版本: {', '.join(available) or '(无)'}"
        )
        self.name = name
        self.ranges = ranges
        self.available = available


class InvalidRangeError(ResolutionError):
    """版本范围字符串无法解析"""

    code = "INVALID_RANGE"

    def __init__(self, version_range: str) -> None:
        super().__init__(f"无效的版本范围: {version_range!r}")
        self.version_range = version_range


class ResolutionDivergedError(ResolutionError):
    """不动点解析在轮数上限内未收敛"""

    code = "RESOLUTION_DIVERGED"

    def __init__(self, rounds: int) -> None:
        super().__init__(f"依赖解析在 {rounds} 轮内未收敛")
        self.rounds = rounds


# =========================================================================
# 缓存 / 拉取 / 安装
# =========================================================================

class CacheIOError(SosoError):
    """缓存读写时的文件系统错误"""

    code = "CACHE_IO_ERROR"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"缓存读写失败 {path}: {reason}")
        self.path = path
        self.reason = reason


class FetchFailedError(SosoError):
    """拉取包内容失败"""

    code = "FETCH_FAILED"

    def __init__(self, locator: str, reason: str) -> None:
        super().__init__(f"拉取失败 {locator}: {reason}")
        self.locator = locator
        self.reason = reason


class IntegrityMismatchError(SosoError):
    """包内容与锁文件记录的完整性摘要不一致"""

    code = "INTEGRITY_MISMATCH"

    def __init__(self, name: str, expected: str, actual: str) -> None:
        super().__init__(
            f"完整性校验失败 {name}: 期望 {expected}, 实际 {actual}"
        )
        self.name = name
        self.expected = expected
        self.actual = actual


class InstallError(SosoError):
    """部分依赖包安装失败"""

    code = "INSTALL_FAILED"

    def __init__(self, failures: dict[str, str]) -> None:
        detail = "; ".join(f"{k}: {v}" for k, v in sorted(failures.items()))
        super().__init__(f"{len(failures)} 个依赖包安装失败 ({detail})")
        self.failures = failures


class FallbackInstallError(SosoError):
    """注册表外的包通过外部生态安装失败"""

    code = "FALLBACK_FAILED"

    def __init__(self, name: str) -> None:
        super().__init__(f"依赖包 {name} 既不在 soso 注册表中，外部安装也失败了")
        self.name = name


class PublishError(SosoError):
    """发布前置条件不满足"""

    code = "PUBLISH_ERROR"


# =========================================================================
# 锁文件
# =========================================================================

class LockfileError(SosoError):
    """锁文件相关错误基类"""

    code = "LOCKFILE_ERROR"


class LockfileCorruptError(LockfileError):
    """锁文件内容无法解析"""

    code = "LOCKFILE_CORRUPT"


class MalformedLockfileError(LockfileError):
    """锁文件结构不符合预期"""

    code = "LOCKFILE_MALFORMED"


class UnsupportedLockfileVersionError(LockfileError):
    """锁文件版本不受支持"""

    code = "LOCKFILE_UNSUPPORTED"

    def __init__(self, version: object) -> None:
        super().__init__(f"不支持的锁文件版本: {version!r}")
        self.version = version
