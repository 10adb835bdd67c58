"""核心数据模型

清单中的多态字段（arch 可为字符串或数组，post 可为字符串或按系统分键的表）
在解析阶段一次性归一化为 ArchFilter / PostCommand，使用处不再做类型判断。
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# arch / post 键以系统名结尾即视为匹配，如 x86_64-linux
# 别名只比较最后一段，避免 "darwin" 误中 "win"
_OS_ALIASES: dict[str, frozenset[str]] = {
    "darwin": frozenset(("macos", "osx")),
    "windows": frozenset(("win", "win32", "win64")),
}

_WILDCARDS = frozenset(("", "*"))


def current_os() -> str:
    """当前操作系统名（linux / darwin / windows）"""
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "darwin"
    return "linux"


def matches_os(key: str, os_name: str) -> bool:
    key = key.lower()
    if key.endswith(os_name):
        return True
    return re.split(r"[-_.\s]", key)[-1] in _OS_ALIASES.get(os_name, ())


# =========================================================================
# 插件类型
# =========================================================================


class AddonType(str, Enum):
    PLUGIN = "plugin"
    FONT = "font"
    LIBRARY = "library"
    COLOR = "color"
    META = "meta"

    @property
    def folder(self) -> str:
        """配置目录下存放该类插件的子目录"""
        if self is AddonType.LIBRARY:
            return "libraries"
        if self is AddonType.META:
            return AddonType.PLUGIN.folder
        return f"{self.value}s"


# 本地实际落盘的类型（meta 只是聚合包，没有独立目录）
INSTALLABLE_TYPES = (AddonType.PLUGIN, AddonType.FONT, AddonType.LIBRARY, AddonType.COLOR)


# =========================================================================
# 多态字段的归一化形式
# =========================================================================


@dataclass(frozen=True)
class ArchFilter:
    """平台过滤器：空表示不限平台"""

    filters: tuple[str, ...] = ()

    @classmethod
    def parse(cls, raw: Any) -> ArchFilter:
        if raw is None:
            return cls()
        if isinstance(raw, str):
            return cls((raw,))
        if isinstance(raw, list) and all(isinstance(x, str) for x in raw):
            return cls(tuple(raw))
        raise ValueError(f"无效的 arch: {raw!r}")

    def supported(self, os_name: str | None = None) -> bool:
        if not self.filters:
            return True
        os_name = os_name or current_os()
        for f in self.filters:
            if f in _WILDCARDS or matches_os(f, os_name):
                return True
        return False


@dataclass(frozen=True)
class PostCommand:
    """按操作系统分键的安装后命令表，"*" 为通配"""

    commands: tuple[tuple[str, str], ...] = ()

    @classmethod
    def parse(cls, raw: Any) -> PostCommand:
        if raw is None or raw == "":
            return cls()
        if isinstance(raw, str):
            return cls((("*", raw),))
        if isinstance(raw, dict) and all(
            isinstance(k, str) and isinstance(v, str) for k, v in raw.items()
        ):
            return cls(tuple(raw.items()))
        raise ValueError(f"无效的 post: {raw!r}")

    def resolve(self, os_name: str | None = None) -> str:
        """精确键 > 后缀匹配 > 通配，都没有则返回空串"""
        os_name = os_name or current_os()
        table = dict(self.commands)
        if os_name in table:
            return table[os_name]
        for key, cmd in self.commands:
            if key != "*" and matches_os(key, os_name):
                return cmd
        return table.get("*", "")


# =========================================================================
# 清单实体
# =========================================================================


@dataclass(frozen=True)
class Dependency:
    version: str = ""  # 仅作展示
    optional: bool = False


@dataclass
class FileArtifact:
    """插件附带的单个可下载文件（多平台二进制等）"""

    url: str
    checksum: str = ""  # 只携带，不校验
    arch: ArchFilter = field(default_factory=ArchFilter)
    path: str = ""
    optional: bool = False


@dataclass
class Addon:
    """清单中的一个插件条目；id 是跨订阅源、本地状态、依赖图的唯一关联键"""

    id: str
    version: str = ""
    mod_version: Any = None
    type: AddonType = AddonType.PLUGIN
    name: str = ""
    description: str = ""
    provides: list[str] = field(default_factory=list)
    replaces: list[str] = field(default_factory=list)
    remote: str = ""
    dependencies: dict[str, Dependency] = field(default_factory=dict)
    conflicts: dict[str, Dependency] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    path: str = ""
    arch: ArchFilter = field(default_factory=ArchFilter)
    post: PostCommand = field(default_factory=PostCommand)
    url: str = ""
    checksum: str = ""
    extra: dict[str, Any] = field(default_factory=dict)
    files: list[FileArtifact] = field(default_factory=list)
    # 所在清单的位置（URL 或本地路径），用于解析相对端点；不持久化
    origin: str = field(default="", compare=False, repr=False)

    def supported(self, os_name: str | None = None) -> bool:
        return self.arch.supported(os_name)


@dataclass
class ClientRelease:
    """清单中 lite-xls 段：编辑器客户端的兼容信息"""

    version: str = ""
    mod_version: Any = None
    files: list[FileArtifact] = field(default_factory=list)


@dataclass
class Manifest:
    addons: list[Addon] = field(default_factory=list)
    remotes: list[str] = field(default_factory=list)
    lite_xls: list[ClientRelease] = field(default_factory=list)


# =========================================================================
# 查询结果
# =========================================================================


@dataclass
class InstalledAddon:
    """本地扫描到的已安装条目"""

    id: str
    type: AddonType
    path: str


@dataclass
class RemoteHealth:
    """订阅源健康检查结果"""

    url: str
    ok: bool
    official: bool = False
    error: str = ""
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


# =========================================================================
# 安装上下文
# =========================================================================


@dataclass(frozen=True)
class InstallContext:
    """沿递归安装链向下传递，用于检测 id 环与端点环"""

    chain: tuple[str, ...] = ()
    endpoints: tuple[str, ...] = ()

    def enter(self, addon_id: str) -> InstallContext:
        return InstallContext(self.chain + (addon_id,), self.endpoints)

    def fetching(self, endpoint: str) -> InstallContext:
        return InstallContext(self.chain, self.endpoints + (endpoint,))
