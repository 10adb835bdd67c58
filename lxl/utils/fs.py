"""文件系统工具：相关性判断、删除、过滤移动"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

_IRRELEVANT_NAMES = frozenset((
    "readme", "readme.md", "license", "license.md", "manifest.json",
))

STUB_MANIFEST = "manifest.json"


class DirEntry(Protocol):
    """目录项的最小能力：名字 + 是否目录

    os.DirEntry 与 pathlib.Path 都满足，测试中可直接用简单替身。
    """

    @property
    def name(self) -> str: ...

    def is_dir(self) -> bool: ...


def is_relevant(entry: DirEntry) -> bool:
    """文档、许可证、清单、版本控制目录、test* 均视为无关项"""
    name = entry.name.lower()
    if name in _IRRELEVANT_NAMES:
        return False
    if name == ".git":
        return not entry.is_dir()
    return not name.startswith("test")


def remove_path(path: Path) -> bool:
    """删除文件或目录树，不存在时返回 False 而不报错"""
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False


def move_dir_filtered(
    src: Path,
    dst: Path,
    allow: Callable[[DirEntry], bool] = is_relevant,
) -> None:
    """把 src 下被 allow 放行的文件逐个移动到 dst

    被拒绝的目录连同子树一并跳过。跨文件系统时 shutil.move 退化为复制。
    """
    dst.mkdir(parents=True, exist_ok=True)
    for root, dirs, files in os.walk(src):
        base = Path(root)
        target = dst / base.relative_to(src)
        dirs[:] = [d for d in dirs if allow(base / d)]
        for d in dirs:
            (target / d).mkdir(exist_ok=True)
        for f in files:
            entry = base / f
            if allow(entry):
                shutil.move(str(entry), str(target / f))
