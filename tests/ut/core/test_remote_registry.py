"""订阅源注册表测试"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from lxl.core.config import OFFICIAL_PREFIX, Config
from lxl.core.exceptions import ConfigError, RemoteError
from lxl.core.models import Addon, Manifest
from lxl.core.registry import RemoteRegistry, split_ref

DEFAULTS = Config().default_remotes


def _registry(tmp_path: Path) -> RemoteRegistry:
    return RemoteRegistry(
        tmp_path / "lxl" / "status.yml", DEFAULTS, official_prefix=OFFICIAL_PREFIX,
    )


class TestLoad:
    def test_bootstrap_writes_defaults(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path).load()
        assert reg.remotes == DEFAULTS
        saved = yaml.safe_load((tmp_path / "lxl" / "status.yml").read_text())
        assert saved == {"remotes": DEFAULTS}

    def test_reads_existing(self, tmp_path: Path) -> None:
        status = tmp_path / "lxl" / "status.yml"
        status.parent.mkdir(parents=True)
        status.write_text("remotes:\n  - https://a/manifest.json\n")
        assert _registry(tmp_path).load().remotes == ["https://a/manifest.json"]

    def test_bad_shape(self, tmp_path: Path) -> None:
        status = tmp_path / "lxl" / "status.yml"
        status.parent.mkdir(parents=True)
        status.write_text("remotes: oops\n")
        with pytest.raises(ConfigError, match="格式错误"):
            _registry(tmp_path).load()

    def test_corrupt_yaml(self, tmp_path: Path) -> None:
        status = tmp_path / "lxl" / "status.yml"
        status.parent.mkdir(parents=True)
        status.write_text("remotes: [\n")
        with pytest.raises(ConfigError, match="无法读取订阅状态"):
            _registry(tmp_path).load()


class TestSplitRef:
    def test_cases(self) -> None:
        assert split_ref("https://a/b") == ("https://a/b", "")
        assert split_ref("https://a/b:latest") == ("https://a/b", "latest")
        assert split_ref("https://a:8080/b") == ("https://a:8080/b", "")


class TestSubscribe:
    def test_github_rewritten_to_raw(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path)
        url = reg.add_remote("https://github.com/someone/addons/blob/master/manifest.json")
        assert url == "https://raw.githubusercontent.com/someone/addons/master/manifest.json"
        assert reg.remotes[-1] == url
        # 持久化
        assert _registry(tmp_path).load().remotes[-1] == url

    def test_duplicate_rejected(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path)
        with pytest.raises(RemoteError, match="已存在"):
            reg.add_remote(DEFAULTS[0])

    def test_pinned_commit_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(RemoteError, match="不支持指定提交"):
            _registry(tmp_path).add_remote("https://github.com/a/b/blob/master/manifest.json:abc123")

    def test_other_host_validated(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path)
        url = reg.add_remote("https://mirror.example/m.json", lambda u: b'{"addons": []}')
        assert url == "https://mirror.example/m.json"

    def test_other_host_invalid_manifest(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path)
        with pytest.raises(RemoteError, match="无法使用订阅源"):
            reg.add_remote("https://mirror.example/m.json", lambda u: b"<html>")
        assert "https://mirror.example/m.json" not in reg.remotes


class TestUnsubscribe:
    def test_remove_any_position(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path)
        reg.remove_remote(DEFAULTS[0])
        assert DEFAULTS[0] not in _registry(tmp_path).load().remotes

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(RemoteError, match="找不到订阅源"):
            _registry(tmp_path).remove_remote("https://nowhere/manifest.json")


class TestLookup:
    def test_has_remote_by_path(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path).load()
        assert reg.has_remote("https://github.com/lite-xl/lite-xl-plugins/master/manifest.json")
        assert not reg.has_remote("https://github.com/other/repo/master/manifest.json")

    def test_has_remote_ignores_scheme_and_blob(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path).load()
        assert reg.has_remote("http://github.com/lite-xl/lite-xl-ide/blob/master/manifest.json")
        assert reg.has_remote(f"{DEFAULTS[1]}:latest")

    def test_has_remote_same_path_other_host(self, tmp_path: Path) -> None:
        """仅路径相同、主机不同的源不算已订阅"""
        reg = RemoteRegistry(tmp_path / "status.yml", ["https://a.example/manifest.json"])
        reg.load()
        assert reg.has_remote("https://a.example/manifest.json")
        assert not reg.has_remote("https://c.example/manifest.json")
        assert not reg.has_remote("https://a.example/other/manifest.json")

    def test_is_official(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path)
        assert reg.is_official(DEFAULTS[0])
        assert not reg.is_official("https://raw.githubusercontent.com/someone/x/manifest.json")

    def test_retrieve_prefers_in_flight(self, tmp_path: Path) -> None:
        reg = _registry(tmp_path)
        reg.manifest = Manifest(addons=[Addon(id="p", version="1")])
        stub_p = Addon(id="p", version="2")
        reg.push_installing([stub_p])
        assert reg.retrieve("p") is stub_p
        reg.pop_installing([stub_p])
        assert reg.retrieve("p").version == "1"
        assert reg.retrieve("ghost") is None
