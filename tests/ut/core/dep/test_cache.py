"""内容寻址包缓存测试"""

from __future__ import annotations

import base64
import hashlib
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from soso.core.dep.cache import LOCK_STRIPES, TMP_PREFIX, PackageCache
from soso.core.exceptions import CacheIOError


def _make_tree(root: Path, files: dict[str, bytes]) -> Path:
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(content)
    return root


def _pkg(tmp_path: Path, name: str = "src", extra: dict[str, bytes] | None = None) -> Path:
    files = {"package.json": b'{"name": "pkg"}', "lib/index.js": b"module.exports = 1;\n"}
    files.update(extra or {})
    return _make_tree(tmp_path / name, files)


@pytest.fixture()
def cache(tmp_path: Path) -> PackageCache:
    return PackageCache(tmp_path / "cache")


class TestPresence:
    def test_clear_add_has_get(self, cache: PackageCache, tmp_path: Path) -> None:
        cache.clear()
        assert cache.has("pkg", "1.0.0") is False
        assert cache.get("pkg", "1.0.0") is None

        path = cache.add("pkg", "1.0.0", _pkg(tmp_path))
        assert cache.has("pkg", "1.0.0") is True
        assert cache.get("pkg", "1.0.0") == path
        assert (path / "lib" / "index.js").read_bytes() == b"module.exports = 1;\n"

    def test_content_key_layout(self, cache: PackageCache) -> None:
        key = hashlib.sha256(b"pkg@1.0.0").hexdigest()
        assert cache.content_key("pkg", "1.0.0") == key
        assert cache.entry_path("pkg", "1.0.0") == cache.cache_dir / key / "package"

    def test_entry_without_manifest_is_absent(self, cache: PackageCache, tmp_path: Path) -> None:
        broken = cache.entry_path("pkg", "1.0.0")
        broken.mkdir(parents=True)
        (broken / "half.js").write_text("x")
        assert cache.has("pkg", "1.0.0") is False

        # 残缺条目会被完整条目替换
        path = cache.add("pkg", "1.0.0", _pkg(tmp_path))
        assert cache.has("pkg", "1.0.0")
        assert not (path / "half.js").exists()

    def test_source_without_manifest_rejected(self, cache: PackageCache, tmp_path: Path) -> None:
        src = _make_tree(tmp_path / "bad", {"index.js": b"1"})
        with pytest.raises(CacheIOError) as exc_info:
            cache.add("pkg", "1.0.0", src)
        assert exc_info.value.path == str(src)
        assert cache.has("pkg", "1.0.0") is False

    def test_vcs_metadata_not_cached(self, cache: PackageCache, tmp_path: Path) -> None:
        src = _pkg(tmp_path, extra={".git/HEAD": b"ref: refs/heads/main"})
        path = cache.add("pkg", "1.0.0", src)
        assert not (path / ".git").exists()


class TestIdempotence:
    def test_add_twice(self, cache: PackageCache, tmp_path: Path) -> None:
        src = _pkg(tmp_path)
        first = cache.add("pkg", "1.0.0", src)
        digest = cache.calculate_integrity(first)

        second = cache.add("pkg", "1.0.0", src)
        assert second == first
        assert cache.has("pkg", "1.0.0")
        assert cache.calculate_integrity(second) == digest

    def test_existing_entry_not_overwritten(self, cache: PackageCache, tmp_path: Path) -> None:
        path = cache.add("pkg", "1.0.0", _pkg(tmp_path, "a"))
        cache.add("pkg", "1.0.0", _pkg(tmp_path, "b", {"lib/index.js": b"changed"}))
        assert (path / "lib" / "index.js").read_bytes() == b"module.exports = 1;\n"

    def test_concurrent_add_same_key(self, cache: PackageCache, tmp_path: Path) -> None:
        src = _pkg(tmp_path)
        with ThreadPoolExecutor(max_workers=8) as pool:
            paths = list(pool.map(lambda _: cache.add("pkg", "1.0.0", src), range(16)))

        assert len(set(paths)) == 1
        assert cache.has("pkg", "1.0.0")
        leftovers = [p for p in cache.cache_dir.iterdir() if p.name.startswith(TMP_PREFIX)]
        assert leftovers == []
        assert cache.get_stats().entry_count == 1

    def test_lock_count_fixed(self, cache: PackageCache, tmp_path: Path) -> None:
        src = _pkg(tmp_path)
        for i in range(LOCK_STRIPES * 2):
            cache.add("pkg", f"1.0.{i}", src)

        assert len(cache._locks) == LOCK_STRIPES
        key = PackageCache.content_key("pkg", "1.0.0")
        assert cache._key_lock(key) is cache._key_lock(key)


class TestIntegrity:
    def test_known_digest(self, cache: PackageCache, tmp_path: Path) -> None:
        root = _make_tree(tmp_path / "t", {"package.json": b"{}", "src/index.js": b"x"})
        expected = hashlib.sha256(b"package.json{}srcindex.jsx").digest()
        assert cache.calculate_integrity(root) == "sha256-" + base64.b64encode(expected).decode()

    def test_format(self, cache: PackageCache, tmp_path: Path) -> None:
        digest = cache.calculate_integrity(_pkg(tmp_path))
        algo, _, b64 = digest.partition("-")
        assert algo == "sha256"
        assert len(base64.b64decode(b64)) == 32

    def test_creation_order_independent(self, cache: PackageCache, tmp_path: Path) -> None:
        files = {"package.json": b"{}", "b.txt": b"B", "a.txt": b"A", "z/y.txt": b"Y", "z/c.txt": b"C"}
        forward = _make_tree(tmp_path / "forward", files)
        backward = _make_tree(tmp_path / "backward", dict(reversed(list(files.items()))))
        assert cache.calculate_integrity(forward) == cache.calculate_integrity(backward)

    def test_nested_modules_excluded(self, cache: PackageCache, tmp_path: Path) -> None:
        root = _pkg(tmp_path)
        before = cache.calculate_integrity(root)
        _make_tree(root, {
            "node_modules/dep/package.json": b"{}",
            "lib/node_modules/deeper.js": b"1",
        })
        assert cache.calculate_integrity(root) == before

    def test_content_change_detected(self, cache: PackageCache, tmp_path: Path) -> None:
        root = _pkg(tmp_path)
        before = cache.calculate_integrity(root)
        (root / "lib" / "index.js").write_bytes(b"tampered")
        assert cache.calculate_integrity(root) != before

    def test_missing_path_raises(self, cache: PackageCache, tmp_path: Path) -> None:
        with pytest.raises(CacheIOError):
            cache.calculate_integrity(tmp_path / "nope")


class TestMaintenance:
    def test_stats(self, cache: PackageCache, tmp_path: Path) -> None:
        cache.add("a", "1.0.0", _pkg(tmp_path, "a"))
        cache.add("b", "2.0.0", _pkg(tmp_path, "b"))
        (cache.cache_dir / f"{TMP_PREFIX}orphan").mkdir()

        stats = cache.get_stats()
        assert stats.entry_count == 2
        per_pkg = len(b'{"name": "pkg"}') + len(b"module.exports = 1;\n")
        assert stats.total_bytes == 2 * per_pkg

    def test_clear_removes_everything(self, cache: PackageCache, tmp_path: Path) -> None:
        cache.add("a", "1.0.0", _pkg(tmp_path))
        cache.clear()
        assert cache.cache_dir.is_dir()
        assert list(cache.cache_dir.iterdir()) == []
        assert cache.has("a", "1.0.0") is False
        assert cache.get_stats().entry_count == 0
