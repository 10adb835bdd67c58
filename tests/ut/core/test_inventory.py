"""已安装插件清点测试"""

from pathlib import Path

from lxl.core.inventory import Inventory
from lxl.core.models import AddonType


class TestInventory:
    def test_scan_types(self, tmp_path: Path) -> None:
        (tmp_path / "plugins" / "lsp").mkdir(parents=True)
        (tmp_path / "plugins" / "minimap.lua").write_text("")
        (tmp_path / "colors").mkdir()
        (tmp_path / "colors" / "nord.lua").write_text("")
        (tmp_path / "libraries" / "widget").mkdir(parents=True)

        found = {(i.id, i.type) for i in Inventory(tmp_path).scan()}
        assert found == {
            ("lsp", AddonType.PLUGIN),
            ("minimap", AddonType.PLUGIN),
            ("nord", AddonType.COLOR),
            ("widget", AddonType.LIBRARY),
        }

    def test_missing_root(self, tmp_path: Path) -> None:
        assert Inventory(tmp_path / "nothing").scan() == []

    def test_find(self, tmp_path: Path) -> None:
        (tmp_path / "fonts").mkdir()
        (tmp_path / "fonts" / "jetbrains.ttf").write_text("")
        found = Inventory(tmp_path).find("jetbrains")
        assert len(found) == 1
        assert found[0].path == str(tmp_path / "fonts" / "jetbrains.ttf")

    def test_find_restricted_to_type_folder(self, tmp_path: Path) -> None:
        (tmp_path / "plugins").mkdir()
        (tmp_path / "plugins" / "foo.lua").write_text("")
        (tmp_path / "fonts").mkdir()
        (tmp_path / "fonts" / "foo.ttf").write_text("")
        inv = Inventory(tmp_path)
        assert len(inv.find("foo")) == 2
        assert [i.type for i in inv.find("foo", AddonType.PLUGIN)] == [AddonType.PLUGIN]
        # meta 类型落在 plugins 目录
        assert [i.type for i in inv.find("foo", AddonType.META)] == [AddonType.PLUGIN]
