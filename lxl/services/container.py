"""服务容器：统一依赖注入

安装引擎的各组件都通过容器获取，同一容器内共享同一个订阅源注册表
（聚合清单缓存、正在安装列表都挂在注册表上）。

依赖关系图（→ 表示依赖）:
  aggregator → registry, fetcher
  installer  → registry, fetcher, trees, commands
  resolver   → registry, aggregator, installer, inventory

用法:
    container = ServiceContainer()
    container.resolver.install("lsp")

    # 测试中替换网络 / git 实现
    container = ServiceContainer(cfg, fetcher=FakeFetcher(...), trees=FakeTrees(...))
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lxl.core.aggregator import CatalogAggregator
    from lxl.core.config import Config
    from lxl.core.installer import InstallExecutor
    from lxl.core.inventory import Inventory
    from lxl.core.protocols import ContentFetcher, TreeSource
    from lxl.core.registry import RemoteRegistry
    from lxl.core.resolver import AddonResolver
    from lxl.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器；fetcher / trees / commands 可显式注入"""

    def __init__(
        self,
        config: Config | None = None,
        *,
        fetcher: ContentFetcher | None = None,
        trees: TreeSource | None = None,
        commands: CommandExecutor | None = None,
    ) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from lxl.core.config import get_config
            config = get_config()
        self._config = config
        for name, value in (("fetcher", fetcher), ("trees", trees), ("commands", commands)):
            if value is not None:
                self._instances[name] = value

    @property
    def config(self) -> Config:
        return self._config

    # ---- 外部协作者 ----

    @property
    def fetcher(self) -> ContentFetcher:
        if "fetcher" not in self._instances:
            from lxl.utils.net import HttpFetcher
            self._instances["fetcher"] = HttpFetcher(timeout=self._config.http_timeout)
        return self._instances["fetcher"]  # type: ignore[return-value]

    @property
    def commands(self) -> CommandExecutor:
        if "commands" not in self._instances:
            from lxl.utils.shell import LocalExecutor
            self._instances["commands"] = LocalExecutor()
        return self._instances["commands"]  # type: ignore[return-value]

    @property
    def trees(self) -> TreeSource:
        if "trees" not in self._instances:
            from lxl.services.sources import GitSource, TreeFetcher
            self._instances["trees"] = TreeFetcher(git_source=GitSource(self.commands))
        return self._instances["trees"]  # type: ignore[return-value]

    # ---- 核心组件 ----

    @property
    def registry(self) -> RemoteRegistry:
        if "registry" not in self._instances:
            from lxl.core.registry import RemoteRegistry
            self._instances["registry"] = RemoteRegistry(
                status_path=self._config.status_path,
                default_remotes=self._config.default_remotes,
                official_prefix=self._config.official_prefix,
            )
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def aggregator(self) -> CatalogAggregator:
        if "aggregator" not in self._instances:
            from lxl.core.aggregator import CatalogAggregator
            self._instances["aggregator"] = CatalogAggregator(
                registry=self.registry,
                fetcher=self.fetcher,
                max_workers=self._config.max_workers,
            )
        return self._instances["aggregator"]  # type: ignore[return-value]

    @property
    def inventory(self) -> Inventory:
        if "inventory" not in self._instances:
            from lxl.core.inventory import Inventory
            self._instances["inventory"] = Inventory(self._config.root)
        return self._instances["inventory"]  # type: ignore[return-value]

    @property
    def installer(self) -> InstallExecutor:
        if "installer" not in self._instances:
            from lxl.core.installer import InstallExecutor
            self._instances["installer"] = InstallExecutor(
                config_root=self._config.root,
                registry=self.registry,
                fetcher=self.fetcher,
                trees=self.trees,
                commands=self.commands,
                script_ext=self._config.script_ext,
                max_workers=self._config.max_workers,
            )
        return self._instances["installer"]  # type: ignore[return-value]

    @property
    def resolver(self) -> AddonResolver:
        if "resolver" not in self._instances:
            from lxl.core.resolver import AddonResolver
            self._instances["resolver"] = AddonResolver(
                registry=self.registry,
                aggregator=self.aggregator,
                executor=self.installer,
                inventory=self.inventory,
                lock_timeout=self._config.lock_timeout,
            )
        return self._instances["resolver"]  # type: ignore[return-value]


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def set_container(container: ServiceContainer) -> None:
    """替换全局容器（测试注入替身时使用）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = container


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
