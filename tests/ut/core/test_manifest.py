"""清单解析测试"""

from pathlib import Path

import pytest

from lxl.core.exceptions import ManifestParseError
from lxl.core.manifest import load_manifest_file, parse_manifest
from lxl.core.models import AddonType

ORIGIN = "https://example.com/manifest.json"


class TestParseManifest:
    def test_full_addon(self) -> None:
        raw = b"""{
          "addons": [{
            "id": "lsp", "version": "0.8", "mod_version": "3", "type": "plugin",
            "description": "LSP client", "remote": "https://github.com/lite-xl/lite-xl-lsp:1.2",
            "dependencies": {"widget": {}, "lintplus": {"optional": true}},
            "conflicts": {"old-lsp": {}},
            "replaces": ["lsp-legacy"],
            "arch": "x86_64-linux",
            "post": {"linux": "make", "*": "echo"},
            "files": [{"url": "https://cdn/x.bin", "arch": ["win"], "optional": true}]
          }],
          "remotes": ["https://other/manifest.json"],
          "lite-xls": [{"version": "2.1.1", "mod_version": "3"}]
        }"""
        m = parse_manifest(raw, ORIGIN)
        addon = m.addons[0]
        assert addon.id == "lsp" and addon.type is AddonType.PLUGIN
        assert addon.origin == ORIGIN
        assert addon.dependencies["lintplus"].optional is True
        assert addon.dependencies["widget"].optional is False
        assert list(addon.conflicts) == ["old-lsp"]
        assert addon.replaces == ["lsp-legacy"]
        assert addon.arch.filters == ("x86_64-linux",)
        assert addon.post.resolve("linux") == "make"
        assert addon.files[0].optional is True
        assert m.remotes == ["https://other/manifest.json"]
        assert m.lite_xls[0].version == "2.1.1"

    def test_defaults(self) -> None:
        m = parse_manifest(b'{"addons":[{"id":"foo"}]}', ORIGIN)
        addon = m.addons[0]
        assert addon.type is AddonType.PLUGIN
        assert addon.version == ""
        assert addon.files == [] and addon.dependencies == {}

    def test_string_dependency_spec(self) -> None:
        m = parse_manifest(b'{"addons":[{"id":"a","dependencies":{"b":">=1.0"}}]}', ORIGIN)
        assert m.addons[0].dependencies["b"].version == ">=1.0"

    @pytest.mark.parametrize("raw", [
        b"not json",
        b"[]",
        b'{"addons": {}}',
        b'{"addons": [{"version": "1"}]}',
        b'{"addons": [{"id": "x", "type": "theme"}]}',
        b'{"addons": [{"id": "x", "arch": 5}]}',
        b'{"addons": [{"id": "x", "files": [{"path": "a"}]}]}',
        b'{"addons": [{"id": "x", "remote": 5}]}',
        b'{"addons": [{"id": "x", "description": ["a"]}]}',
        b'{"addons": [{"id": "x", "url": {"href": "u"}}]}',
        b'{"addons": [{"id": "x", "files": [{"url": 1}]}]}',
    ])
    def test_malformed(self, raw: bytes) -> None:
        with pytest.raises(ManifestParseError, match=ORIGIN):
            parse_manifest(raw, ORIGIN)


class TestLoadManifestFile:
    def test_origin_is_file_path(self, tmp_path: Path) -> None:
        p = tmp_path / "manifest.json"
        p.write_text('{"addons":[{"id":"p","remote":"sub/p"}]}')
        m = load_manifest_file(p)
        assert m.addons[0].origin == str(p)

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestParseError, match="无法读取清单"):
            load_manifest_file(tmp_path / "manifest.json")
