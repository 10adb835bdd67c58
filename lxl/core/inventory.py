"""本地已安装插件清点

按类型目录（plugins / fonts / libraries / colors）扫描顶层条目，
每个条目即一个已安装插件，id 为去掉扩展名的文件名。
"""

from __future__ import annotations

import logging
from pathlib import Path

from lxl.core.models import INSTALLABLE_TYPES, AddonType, InstalledAddon

logger = logging.getLogger(__name__)


class Inventory:
    """已安装插件扫描器"""

    def __init__(self, config_root: Path) -> None:
        self.config_root = config_root

    def scan(self) -> list[InstalledAddon]:
        found: list[InstalledAddon] = []
        for addon_type in INSTALLABLE_TYPES:
            folder = self.config_root / addon_type.folder
            if not folder.is_dir():
                continue
            for entry in sorted(folder.iterdir()):
                addon_id = entry.stem if entry.is_file() else entry.name
                found.append(InstalledAddon(id=addon_id, type=addon_type, path=str(entry)))
        return found

    def find(self, addon_id: str, addon_type: AddonType | None = None) -> list[InstalledAddon]:
        """按 id 查找；给定类型时只看该类型的目录"""
        return [
            item for item in self.scan()
            if item.id == addon_id
            and (addon_type is None or item.type.folder == addon_type.folder)
        ]
