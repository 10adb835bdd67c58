"""领域协议定义

集中定义安装引擎各层之间的接口契约（Protocol），
使执行器、解析器不依赖具体的网络 / git / 文件实现，测试中可直接注入替身。
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from lxl.core.models import Addon, InstallContext


class ContentFetcher(Protocol):
    """远程拉取协议"""

    def get(self, url: str) -> bytes:
        """HTTP GET，非 2xx 抛 TransportError"""
        ...

    def read(self, endpoint: str) -> bytes:
        """HTTP(S) 端点走 get，否则读本地文件"""
        ...


class TreeSource(Protocol):
    """目录树来源协议："在可选 ref 上把目录树取到本地路径"

    target 为 None 时由实现创建临时目录并返回。
    """

    def fetch(self, endpoint: str, target: Path | None = None) -> Path:
        ...


class InstallDispatcher(Protocol):
    """执行器回调解析器的接口，stub 批量安装时使用"""

    def install_dependency(self, addon_id: str, ctx: InstallContext) -> bool:
        """按依赖语义安装，已安装返回 False"""
        ...

    def install_declared(self, addon: Addon, ctx: InstallContext) -> None:
        """按给定声明走完整解析流程（不再查清单）"""
        ...

    def uninstall(self, addon_id: str) -> None:
        ...
