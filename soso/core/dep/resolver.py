"""依赖解析器 - 将依赖图展平为 包名 -> 唯一版本

算法分两遍:
  1. 收集: 从根依赖出发深度优先遍历，把每条边上的版本范围追加到该包的需求列表。
     以 "<name>@<range>" 字面量作为已访问键，同一条边只向下展开一次。
     展开时选取满足 *这一条* 范围的最高版本（临时遍历版本），读取其依赖继续遍历。
  2. 冲突消解: 对每个包按优先级从高到低遍历已发布版本，取第一个同时满足
     全部累积范围的版本。

临时遍历版本与最终选定版本可能不同，极端冲突下会多收集或漏收集深层范围。
strategy="fixed-point" 时用上一轮的解析结果作为遍历版本重新收集，直到结果稳定。

解析状态放在每次调用独立的 ResolutionContext 中，Resolver 实例本身无可变状态，
并发解析互不干扰。任何失败都中止整个解析，不返回部分结果。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from soso.core.dep.models import RegistryView
from soso.core.dep.semver import SemverOracle
from soso.core.exceptions import (
    ConfigError,
    ConflictingRangesError,
    ResolutionDivergedError,
    UnknownPackageError,
    UnsatisfiableRangeError,
)

logger = logging.getLogger(__name__)

STRATEGY_PROVISIONAL = "provisional"
STRATEGY_FIXED_POINT = "fixed-point"


@dataclass
class ResolutionContext:
    """单次收集过程的状态"""

    # 包名 -> 按首次遇到顺序累积的版本范围
    requirements: dict[str, list[str]] = field(default_factory=dict)
    visited: set[str] = field(default_factory=set)
    # 已访问边 -> 用于展开的遍历版本
    traversal: dict[str, str] = field(default_factory=dict)


class Resolver:
    """最高兼容版本解析器"""

    def __init__(
        self,
        view: RegistryView,
        oracle: SemverOracle | None = None,
        strategy: str = STRATEGY_PROVISIONAL,
        max_rounds: int = 10,
    ) -> None:
        if strategy not in (STRATEGY_PROVISIONAL, STRATEGY_FIXED_POINT):
            raise ConfigError(f"未知的解析策略: {strategy}")
        self.view = view
        self.oracle = oracle or SemverOracle()
        self.strategy = strategy
        self.max_rounds = max_rounds

    def resolve(self, root_ranges: dict[str, str]) -> dict[str, str]:
        """解析根依赖范围，返回 {包名: 版本}"""
        if not root_ranges:
            return {}

        ctx = self.collect(root_ranges)
        resolved = self.resolve_conflicts(ctx)
        if self.strategy == STRATEGY_PROVISIONAL:
            return resolved

        for round_no in range(1, self.max_rounds + 1):
            ctx = self.collect(root_ranges, pins=resolved)
            again = self.resolve_conflicts(ctx)
            if again == resolved:
                logger.debug("不动点解析在第 %d 轮收敛", round_no)
                return again
            resolved = again
        raise ResolutionDivergedError(self.max_rounds)

    def collect(
        self,
        root_ranges: dict[str, str],
        pins: dict[str, str] | None = None,
    ) -> ResolutionContext:
        """第一遍: 深度优先收集全部版本需求

        pins 非空时，若固定版本满足当前边的范围则用它展开，否则退回临时最高版本。
        """
        ctx = ResolutionContext()
        # 显式栈: 逆序压栈以保持声明顺序的先序遍历
        stack = list(reversed(list(root_ranges.items())))

        while stack:
            name, version_range = stack.pop()
            logger.debug("收集需求: %s@%s", name, version_range)
            ctx.requirements.setdefault(name, []).append(version_range)

            key = f"{name}@{version_range}"
            if key in ctx.visited:
                continue
            ctx.visited.add(key)

            version = self._traversal_version(name, version_range, pins)
            ctx.traversal[key] = version

            record = self.view.version(name, version)
            deps = record.dependencies if record else {}
            stack.extend(reversed(list(deps.items())))

        return ctx

    def _traversal_version(
        self, name: str, version_range: str, pins: dict[str, str] | None,
    ) -> str:
        versions = self.view.version_ids(name)
        if not versions:
            raise UnknownPackageError(name)

        if pins:
            pinned = pins.get(name)
            if pinned and self.oracle.satisfies(pinned, version_range):
                return pinned

        version = self.oracle.max_satisfying(versions, version_range)
        if version is None:
            raise UnsatisfiableRangeError(
                name, version_range, self.oracle.sort_desc(versions),
            )
        return version

    def resolve_conflicts(self, ctx: ResolutionContext) -> dict[str, str]:
        """第二遍: 为每个包选取同时满足全部累积范围的最高版本"""
        resolved: dict[str, str] = {}
        for name, ranges in ctx.requirements.items():
            logger.debug("消解 %s, 范围: %s", name, ", ".join(ranges))
            versions = self.view.version_ids(name)
            if not versions:
                raise UnknownPackageError(name)

            candidates = self.oracle.sort_desc(versions)
            chosen = next(
                (
                    v for v in candidates
                    if all(self.oracle.satisfies(v, r) for r in ranges)
                ),
                None,
            )
            if chosen is None:
                raise ConflictingRangesError(name, list(ranges), candidates)

            resolved[name] = chosen
            logger.debug("已解析 %s -> %s", name, chosen)
        return resolved
