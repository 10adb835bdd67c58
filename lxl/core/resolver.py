"""插件解析 / 编排

install 的处理顺序:
  0. 聚合清单中定位插件（正在安装列表优先）
  1. 平台检查，不通过时不触碰文件系统
  2. 删除冲突插件
  3. 卸载被替代的插件
  4. 递归安装依赖（可选依赖失败只告警）
  5. 交给执行器落盘

递归沿 InstallContext 传递 id 链，重复进入同一 id 即判为循环依赖；
同一 id 的并发安装由按 id 分配的锁串行化。
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from lxl.core.aggregator import CatalogAggregator
from lxl.core.exceptions import (
    AddonNotFoundError,
    AddonNotInstalledError,
    AlreadyInstalledError,
    ConcurrentInstallError,
    DependencyCycleError,
    DependencyError,
    InstallError,
    LxlError,
    PlatformError,
)
from lxl.core.installer import InstallExecutor
from lxl.core.inventory import Inventory
from lxl.core.models import Addon, AddonType, InstallContext, InstalledAddon, current_os
from lxl.core.registry import RemoteRegistry
from lxl.utils.fs import remove_path

logger = logging.getLogger(__name__)


class AddonResolver:
    """插件安装编排器，同时实现执行器回调所需的 InstallDispatcher"""

    def __init__(
        self,
        registry: RemoteRegistry,
        aggregator: CatalogAggregator,
        executor: InstallExecutor,
        inventory: Inventory,
        lock_timeout: float = 600,
    ) -> None:
        self.registry = registry
        self.aggregator = aggregator
        self.executor = executor
        self.inventory = inventory
        self.lock_timeout = lock_timeout
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install(self, addon_id: str) -> Addon:
        """顶层安装请求，已安装时报错"""
        addon = self._locate(addon_id)
        if self.executor.is_installed(addon):
            raise AlreadyInstalledError(f"插件 {addon_id} 已安装")
        self._install(addon, InstallContext(), top_level=True)
        return addon

    def install_dependency(self, addon_id: str, ctx: InstallContext) -> bool:
        """依赖语义：已安装视为满足，返回是否实际安装"""
        addon = self._locate(addon_id)
        if self.executor.is_installed(addon):
            return False
        return self._install(addon, ctx, top_level=False)

    def install_declared(self, addon: Addon, ctx: InstallContext) -> None:
        """stub 中与请求同 id 的声明：调用方已持有该 id 的锁且已在链上"""
        self._resolve(addon, ctx)

    def _locate(self, addon_id: str) -> Addon:
        self.aggregator.fetch()
        addon = self.registry.retrieve(addon_id)
        if addon is None:
            raise AddonNotFoundError(f"找不到插件 {addon_id}")
        return addon

    def _install(self, addon: Addon, ctx: InstallContext, top_level: bool) -> bool:
        if addon.id in ctx.chain:
            raise DependencyCycleError([*ctx.chain, addon.id])
        ctx = ctx.enter(addon.id)

        with self._guard(addon.id):
            # 等锁期间可能已被另一个请求装好
            if self.executor.is_installed(addon):
                if top_level:
                    raise AlreadyInstalledError(f"插件 {addon.id} 已安装")
                return False
            self._resolve(addon, ctx)
        logger.info("已安装 %s (%s)", addon.id, addon.version)
        return True

    def _resolve(self, addon: Addon, ctx: InstallContext) -> None:
        if not addon.supported():
            raise PlatformError(
                f"插件 {addon.id} 不支持当前系统 {current_os()} "
                f"(支持: {', '.join(addon.arch.filters)})"
            )

        for conflict_id in addon.conflicts:
            target = self.registry.retrieve(conflict_id)
            if target is not None and self.executor.remove_installed(target):
                logger.warning("已移除冲突插件: %s", conflict_id)

        for replaced_id in addon.replaces:
            self.uninstall(replaced_id)
            logger.info("%s 替代了 %s", addon.id, replaced_id)

        for dep_id, dep in addon.dependencies.items():
            try:
                self.install_dependency(dep_id, ctx)
            except DependencyCycleError:
                raise
            except LxlError as e:
                if dep.optional:
                    logger.warning("可选依赖 %s 安装失败，已忽略: %s", dep_id, e)
                    continue
                raise DependencyError(
                    f"无法安装必需依赖 {dep_id}: {e}", dependency=dep_id,
                ) from e

        self.executor.install(addon, ctx, self)

    @contextmanager
    def _guard(self, addon_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(addon_id, threading.Lock())
        if not lock.acquire(timeout=self.lock_timeout):
            raise ConcurrentInstallError(f"等待 {addon_id} 的并发安装超时")
        try:
            yield
        finally:
            lock.release()

    # ------------------------------------------------------------------
    # 卸载
    # ------------------------------------------------------------------

    def uninstall(self, addon_id: str) -> None:
        """先按本地扫描删除，找不到再按清单中的目标路径删除

        清单中有该插件时只扫描它所属类型的目录。
        """
        addon = self._known(addon_id)
        found = self.inventory.find(addon_id, addon.type if addon is not None else None)
        for item in found:
            try:
                remove_path(Path(item.path))
            except OSError as e:
                raise InstallError(f"无法删除 {item.path}: {e}") from e
            logger.info("已卸载 %s: %s", addon_id, item.path)
        if found:
            return

        if addon is not None and self.executor.remove_installed(addon):
            logger.info("已卸载 %s", addon_id)
            return
        raise AddonNotInstalledError(f"插件 {addon_id} 未安装")

    def _known(self, addon_id: str) -> Addon | None:
        if self.registry.manifest is None:
            try:
                self.aggregator.fetch()
            except LxlError as e:
                logger.debug("卸载时无法获取清单: %s", e)
        return self.registry.retrieve(addon_id)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def find(self, keyword: str = "") -> list[Addon]:
        keyword = keyword.lower()
        catalog = self.aggregator.fetch()
        return [a for a in catalog.addons if keyword in a.id.lower()]

    def list_installed(self, keyword: str = "") -> list[Addon]:
        """本地已安装列表，能在清单中找到的用清单信息补全"""
        keyword = keyword.lower()
        try:
            catalog = self.aggregator.fetch()
        except LxlError as e:
            logger.warning("无法获取清单，仅显示本地信息: %s", e)
            catalog = None
        known = {a.id: a for a in catalog.addons} if catalog else {}

        result: list[Addon] = []
        seen: set[str] = set()
        for item in self.inventory.scan():
            if keyword not in item.id.lower() or item.id in seen:
                continue
            seen.add(item.id)
            entry = known.get(item.id)
            if entry is None or entry.type is AddonType.META:
                entry = _bare_addon(item)
            result.append(entry)
        return result


def _bare_addon(item: InstalledAddon) -> Addon:
    return Addon(id=item.id, version="", type=item.type, path=item.path)
