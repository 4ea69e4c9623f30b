"""依赖升级测试"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from soso.core.config import Config
from soso.core.dep.models import VersionRecord
from soso.core.dep.registry import RegistryStore
from soso.core.exceptions import ManifestError
from soso.core.installer import Installer
from soso.core.updater import Updater


@pytest.fixture()
def setup(tmp_path: Path) -> tuple[Updater, MagicMock, Path]:
    config = Config(home_dir=str(tmp_path / "home"))
    store = RegistryStore(config.registry_file)
    view = store.load()
    for name, versions in {"util": ["1.0.0", "1.4.0", "2.1.0"], "core": ["3.0.0"]}.items():
        for v in versions:
            view.add_version(name, VersionRecord(version=v, git_url=f"https://h/{name}.git", tag=f"v{v}"))
    store.save(view)

    project = tmp_path / "project"
    project.mkdir()
    (project / "package.json").write_text(json.dumps({
        "name": "demo",
        "dependencies": {"util": "^1.0.0", "core": "^3.0.0", "lodash": "^4.0.0"},
    }), encoding="utf-8")

    installer = MagicMock(spec=Installer)
    return Updater(project, config=config, registry=store, installer=installer), installer, project


def _deps(project: Path) -> dict[str, str]:
    return json.loads((project / "package.json").read_text(encoding="utf-8"))["dependencies"]


class TestFindLatest:
    def test_newer_major_available(self, setup) -> None:
        updater, _, _ = setup
        view = updater.registry.load()
        assert updater.find_latest_version("util", "^1.0.0", view) == "2.1.0"

    def test_already_latest(self, setup) -> None:
        updater, _, _ = setup
        view = updater.registry.load()
        assert updater.find_latest_version("core", "^3.0.0", view) is None

    def test_unknown_package(self, setup) -> None:
        updater, _, _ = setup
        assert updater.find_latest_version("lodash", "^4.0.0", updater.registry.load()) is None

    def test_range_matches_nothing(self, setup) -> None:
        updater, _, _ = setup
        assert updater.find_latest_version("util", "^9.0.0", updater.registry.load()) is None


class TestUpdate:
    def test_update_all(self, setup) -> None:
        updater, installer, project = setup
        changes = updater.update()

        assert changes == {"util": "^2.1.0"}
        assert _deps(project) == {"util": "^2.1.0", "core": "^3.0.0", "lodash": "^4.0.0"}
        installer.install.assert_called_once_with()

    def test_update_single(self, setup) -> None:
        updater, installer, project = setup
        assert updater.update("core") == {}
        assert _deps(project)["util"] == "^1.0.0"
        installer.install.assert_not_called()

    def test_update_without_reinstall(self, setup) -> None:
        updater, installer, project = setup
        assert updater.update("util", reinstall=False) == {"util": "^2.1.0"}
        installer.install.assert_not_called()

    def test_package_not_in_dependencies(self, setup) -> None:
        updater, _, _ = setup
        with pytest.raises(ManifestError, match="ghost"):
            updater.update("ghost")
