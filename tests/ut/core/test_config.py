"""集中配置测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from soso.core.config import Config, get_config, init_config, reset_config
from soso.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def _clean_config():
    reset_config()
    yield
    reset_config()


class TestConfig:
    def test_derived_paths(self, tmp_path: Path) -> None:
        cfg = Config(home_dir=str(tmp_path))
        assert cfg.cache_dir == str(tmp_path / "cache")
        assert cfg.registry_file == str(tmp_path / "registry.json")

    def test_home_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SOSO_HOME", str(tmp_path / "h"))
        assert Config().home_dir == str(tmp_path / "h")

    def test_defaults(self) -> None:
        cfg = Config(home_dir="/tmp/x")
        assert cfg.resolution_strategy == "provisional"
        assert cfg.lock_match == "names"
        assert cfg.on_corrupt_lockfile == "error"
        assert cfg.lockfile_name == "soso-lock.json"

    def test_from_file(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yml"
        p.write_text(
            f"home_dir: {tmp_path}\nmax_workers: 8\nlock_match: ranges\nteam: infra\n",
            encoding="utf-8",
        )
        cfg = Config.from_file(p)
        assert cfg.max_workers == 8
        assert cfg.lock_match == "ranges"
        assert cfg.cache_dir == str(tmp_path / "cache")
        assert cfg.extra == {"team": "infra"}

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert Config.from_file(tmp_path / "none.yml").max_workers == 4

    @pytest.mark.parametrize("content", [
        "resolution_strategy: greedy\n",
        "lock_match: exact\n",
        "on_corrupt_lockfile: ignore\n",
        "max_workers: 0\n",
        "max_resolution_rounds: 0\n",
    ])
    def test_invalid_values(self, tmp_path: Path, content: str) -> None:
        p = tmp_path / "config.yml"
        p.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError):
            Config.from_file(p)


class TestGlobal:
    def test_get_config_default(self) -> None:
        assert get_config() is get_config()

    def test_init_config(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yml"
        p.write_text("fetch_timeout: 30\n", encoding="utf-8")
        cfg = init_config(p)
        assert get_config() is cfg
        assert cfg.fetch_timeout == 30
