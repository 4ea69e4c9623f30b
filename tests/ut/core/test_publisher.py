"""发布流程测试 - git 操作用 mock 替换"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from soso.core.config import Config
from soso.core.dep.git import GitClient
from soso.core.dep.models import VersionRecord
from soso.core.dep.registry import RegistryStore
from soso.core.exceptions import ExecutionError, PublishError, ValidationError
from soso.core.publisher import Publisher


@pytest.fixture()
def git() -> MagicMock:
    g = MagicMock(spec=GitClient)
    g.is_repository.return_value = True
    g.is_clean.return_value = True
    g.remote_url.return_value = "https://git.example.com/widget.git"
    return g


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    p = tmp_path / "widget"
    p.mkdir()
    (p / "package.json").write_text(json.dumps({
        "name": "widget",
        "version": "1.2.0",
        "dependencies": {"util": "^2.0.0"},
    }), encoding="utf-8")
    return p


@pytest.fixture()
def store(tmp_path: Path) -> RegistryStore:
    return RegistryStore(tmp_path / "home" / "registry.json")


def _publisher(project: Path, store: RegistryStore, git: MagicMock) -> Publisher:
    return Publisher(project, config=Config(home_dir=str(project.parent / "home")), registry=store, git=git)


class TestPublish:
    def test_success(self, project: Path, store: RegistryStore, git: MagicMock) -> None:
        name, record = _publisher(project, store, git).publish()

        assert name == "widget"
        assert record.locator == "https://git.example.com/widget.git#v1.2.0"
        git.create_tag.assert_called_once_with(project, "v1.2.0", "Release 1.2.0")
        git.push_tags.assert_called_once_with(project)

        saved = store.load().version("widget", "1.2.0")
        assert saved is not None
        assert saved.dependencies == {"util": "^2.0.0"}
        assert saved.published_at

    def test_already_published(self, project: Path, store: RegistryStore, git: MagicMock) -> None:
        view = store.load()
        view.add_version("widget", VersionRecord(version="1.2.0", git_url="u", tag="v1.2.0"))
        store.save(view)

        with pytest.raises(PublishError, match="已发布"):
            _publisher(project, store, git).publish()
        git.create_tag.assert_not_called()

    def test_new_version_of_existing_package(self, project: Path, store: RegistryStore, git: MagicMock) -> None:
        view = store.load()
        view.add_version("widget", VersionRecord(version="1.1.0", git_url="u", tag="v1.1.0"))
        store.save(view)

        _publisher(project, store, git).publish()
        assert store.load().version_ids("widget") == ["1.1.0", "1.2.0"]

    @pytest.mark.parametrize(("attr", "value", "message"), [
        ("is_repository", False, "不是 git 仓库"),
        ("is_clean", False, "未提交"),
        ("remote_url", None, "未配置 git 远端"),
    ])
    def test_precondition_failures(
        self, project: Path, store: RegistryStore, git: MagicMock,
        attr: str, value: object, message: str,
    ) -> None:
        getattr(git, attr).return_value = value
        with pytest.raises(PublishError, match=message):
            _publisher(project, store, git).publish()
        assert store.load().packages == {}

    def test_push_failure_rolls_back_tag(self, project: Path, store: RegistryStore, git: MagicMock) -> None:
        git.push_tags.side_effect = ExecutionError("推送标签失败 (rc=1): denied")
        with pytest.raises(PublishError, match="推送标签失败"):
            _publisher(project, store, git).publish()
        git.delete_tag.assert_called_once_with(project, "v1.2.0")
        assert store.load().packages == {}

    def test_tag_failure(self, project: Path, store: RegistryStore, git: MagicMock) -> None:
        git.create_tag.side_effect = ExecutionError("创建标签失败 (rc=128): exists")
        with pytest.raises(PublishError, match="创建标签失败"):
            _publisher(project, store, git).publish()
        git.push_tags.assert_not_called()

    def test_invalid_manifest(self, project: Path, store: RegistryStore, git: MagicMock) -> None:
        (project / "package.json").write_text(json.dumps({"name": "Widget", "version": "1.2.0"}), encoding="utf-8")
        with pytest.raises(ValidationError, match="无效的包名"):
            _publisher(project, store, git).publish()
        git.is_repository.assert_not_called()
