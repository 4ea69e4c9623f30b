"""ServiceContainer 单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

import soso.core.config as cfgmod
from soso.services.container import (
    ServiceContainer,
    get_container,
    reset_container,
)


@pytest.fixture(autouse=True)
def _setup_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """确保测试有独立的配置和数据目录"""
    cfg = cfgmod.Config(home_dir=str(tmp_path / "home"), lock_match="ranges")
    monkeypatch.setattr(cfgmod, "_current", cfg)
    reset_container()
    yield
    reset_container()


class TestServiceContainer:
    def test_lazy_loading(self) -> None:
        c = ServiceContainer()
        assert len(c._instances) == 0
        _ = c.cache
        assert "cache" in c._instances

    def test_shared_instances(self) -> None:
        c = ServiceContainer()
        assert c.registry is c.registry
        assert c.cache is c.cache

    def test_uses_global_config(self, tmp_path: Path) -> None:
        c = ServiceContainer()
        assert c.cache.cache_dir == tmp_path / "home" / "cache"
        assert c.registry.registry_path == tmp_path / "home" / "registry.json"
        assert c.registry.registry_path.is_file()

    def test_installer_shares_collaborators(self, tmp_path: Path) -> None:
        c = ServiceContainer()
        installer = c.installer(tmp_path / "proj")
        assert installer.cache is c.cache
        assert installer.registry is c.registry
        assert installer.fetcher is c.fetcher
        assert installer.project_dir == tmp_path / "proj"

    def test_updater_gets_installer(self, tmp_path: Path) -> None:
        c = ServiceContainer()
        updater = c.updater(tmp_path)
        assert updater.installer.cache is c.cache

    def test_lockfile_follows_config(self, tmp_path: Path) -> None:
        lock = ServiceContainer().lockfile(tmp_path)
        assert lock.path == tmp_path / "soso-lock.json"
        assert lock.match_mode == "ranges"

    def test_explicit_config(self, tmp_path: Path) -> None:
        cfg = cfgmod.Config(home_dir=str(tmp_path / "other"))
        c = ServiceContainer(cfg)
        assert c.config is cfg
        assert c.publisher(tmp_path).registry.registry_path == tmp_path / "other" / "registry.json"


class TestGetContainer:
    def test_singleton(self) -> None:
        c1 = get_container()
        c2 = get_container()
        assert c1 is c2

    def test_reset(self) -> None:
        c1 = get_container()
        reset_container()
        c2 = get_container()
        assert c1 is not c2
