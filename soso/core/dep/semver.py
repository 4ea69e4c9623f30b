"""版本范围判定与排序

基于 semantic_version 的 npm 范围语法（^ ~ x 区间、连字符区间、空格分隔的
比较符组合、||、*）。解析后的范围对象做了缓存，解析器会对同一范围反复判定。
非法的版本号不参与匹配与排序。
"""

from __future__ import annotations

import logging
from functools import lru_cache

import semantic_version

from soso.core.exceptions import InvalidRangeError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1024)
def _parse_range(version_range: str) -> semantic_version.NpmSpec:
    text = version_range.strip() or "*"
    try:
        return semantic_version.NpmSpec(text)
    except ValueError as e:
        raise InvalidRangeError(version_range) from e


@lru_cache(maxsize=4096)
def _parse_version(version: str) -> semantic_version.Version | None:
    try:
        return semantic_version.Version(version)
    except ValueError:
        logger.debug("忽略非法版本号: %s", version)
        return None


class SemverOracle:
    """版本范围判定器: "版本 V 是否满足范围 R" 以及 "按优先级排序版本" """

    def is_valid(self, version: str) -> bool:
        return _parse_version(version) is not None

    def satisfies(self, version: str, version_range: str) -> bool:
        spec = _parse_range(version_range)
        parsed = _parse_version(version)
        return parsed is not None and parsed in spec

    def sort_desc(self, versions: list[str]) -> list[str]:
        """按优先级从高到低排序，丢弃非法版本号"""
        parsed = [(v, _parse_version(v)) for v in versions]
        valid = [(v, p) for v, p in parsed if p is not None]
        valid.sort(key=lambda item: item[1], reverse=True)
        return [v for v, _ in valid]

    def max_satisfying(self, versions: list[str], version_range: str) -> str | None:
        spec = _parse_range(version_range)
        for v in self.sort_desc(versions):
            if _parse_version(v) in spec:
                return v
        return None

    def newer(self, left: str, right: str) -> bool:
        """left 的优先级是否严格高于 right"""
        lv, rv = _parse_version(left), _parse_version(right)
        return lv is not None and rv is not None and lv > rv
