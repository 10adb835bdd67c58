"""网络工具测试：URL 校验、端点拼接、本地读取"""

from pathlib import Path

import pytest

from lxl.core.exceptions import InstallError, ValidationError
from lxl.utils.net import HttpFetcher, is_absolute_url, join_location, validate_url_scheme


class TestValidateUrlScheme:
    def test_https_ok(self) -> None:
        validate_url_scheme("https://example.com/manifest.json")

    def test_file_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("file:///etc/passwd")

    def test_context_in_error(self) -> None:
        with pytest.raises(ValidationError, match="fetch"):
            validate_url_scheme("ftp://x/y", context="fetch")


class TestJoinLocation:
    def test_absolute_detection(self) -> None:
        assert is_absolute_url("https://a/b")
        assert is_absolute_url("git+ssh://a/b")
        assert not is_absolute_url("plugins/foo.lua")
        assert not is_absolute_url("/tmp/manifest.json")

    def test_url_base(self) -> None:
        base = "https://raw.githubusercontent.com/lite-xl/lite-xl-plugins/master/manifest.json"
        assert join_location(base, "plugins/foo.lua") == (
            "https://raw.githubusercontent.com/lite-xl/lite-xl-plugins/master/plugins/foo.lua"
        )

    def test_local_base(self, tmp_path: Path) -> None:
        base = str(tmp_path / "repo" / "manifest.json")
        assert join_location(base, "sub/pkg") == str(tmp_path / "repo" / "sub" / "pkg")


class TestHttpFetcherRead:
    def test_local_file(self, tmp_path: Path) -> None:
        f = tmp_path / "x.lua"
        f.write_bytes(b"return {}")
        assert HttpFetcher().read(str(f)) == b"return {}"

    def test_local_missing(self, tmp_path: Path) -> None:
        with pytest.raises(InstallError, match="无法读取本地文件"):
            HttpFetcher().read(str(tmp_path / "missing.lua"))

    def test_get_rejects_non_http(self) -> None:
        with pytest.raises(ValidationError):
            HttpFetcher().get("file:///etc/hosts")
