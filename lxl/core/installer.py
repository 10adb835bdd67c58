"""安装执行器：把清单条目落到文件系统

单个插件的安装流程:
  1. 端点解析：url > 单文件 > 默认脚本路径 > remote（绝对 / 相对 origin）
  2. 目标路径：path 覆盖 > 唯一文件的 path > <类型目录>/<id>
  3. 落盘：
     - 单脚本：下载字节写入 <目标>.lua
     - 显式指向规范路径：直接克隆到目标
     - 其他：克隆到临时目录后判断 stub 清单 / 单文件 / 普通目录
  4. 下载附带文件（按平台过滤）
  5. 执行安装后命令

临时目录在任何退出路径上都会被删除。
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import replace
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from lxl.core.exceptions import (
    BatchInstallError,
    DependencyCycleError,
    EndpointError,
    InstallError,
    LxlError,
)
from lxl.core.manifest import load_manifest_file
from lxl.core.models import Addon, FileArtifact, InstallContext
from lxl.core.protocols import ContentFetcher, InstallDispatcher, TreeSource
from lxl.core.registry import RemoteRegistry
from lxl.core.task_group import TaskGroup
from lxl.utils.fs import STUB_MANIFEST, is_relevant, move_dir_filtered, remove_path
from lxl.utils.net import is_absolute_url, join_location
from lxl.utils.shell import CommandExecutor, run_checked

logger = logging.getLogger(__name__)


class InstallExecutor:
    """单个插件的安装状态机，终态为成功返回或抛出 LxlError"""

    def __init__(
        self,
        config_root: Path,
        registry: RemoteRegistry,
        fetcher: ContentFetcher,
        trees: TreeSource,
        commands: CommandExecutor,
        script_ext: str = ".lua",
        max_workers: int = 8,
    ) -> None:
        self.config_root = config_root
        self.registry = registry
        self.fetcher = fetcher
        self.trees = trees
        self.commands = commands
        self.script_ext = script_ext
        self.max_workers = max_workers

    # ------------------------------------------------------------------
    # 路径与端点
    # ------------------------------------------------------------------

    def canonical(self, addon: Addon) -> Path:
        return self.config_root / addon.type.folder / addon.id

    def destination(self, addon: Addon) -> Path:
        path = addon.path
        if not path and len(addon.files) == 1 and addon.files[0].path:
            path = addon.files[0].path
        if path in ("", "."):
            return self.canonical(addon)
        return self.config_root / path

    def _with_ext(self, path: Path) -> Path:
        if path.name.endswith(self.script_ext):
            return path
        return path.with_name(path.name + self.script_ext)

    def installed_paths(self, addon: Addon) -> list[Path]:
        """目录形式与单脚本形式两种可能的落盘位置"""
        dest = self.destination(addon)
        return [dest] if dest == self._with_ext(dest) else [dest, self._with_ext(dest)]

    def is_installed(self, addon: Addon) -> bool:
        return any(p.exists() for p in self.installed_paths(addon))

    def remove_installed(self, addon: Addon) -> bool:
        removed = False
        for path in self.installed_paths(addon):
            try:
                removed = remove_path(path) or removed
            except OSError as e:
                raise InstallError(f"无法删除 {path}: {e}") from e
        return removed

    def endpoint(self, addon: Addon) -> tuple[str, bool]:
        """返回 (端点, 是否单脚本)"""
        primary = self._primary_file(addon)
        if addon.url:
            return addon.url, True
        if primary is not None:
            return primary.url, True
        if not addon.remote:
            if addon.files:
                raise EndpointError(f"无法确定 {addon.id} 的有效端点: 声明了多个文件")
            if not addon.origin:
                raise EndpointError(f"无法确定 {addon.id} 的有效端点: 来源清单未知")
            relative = f"{addon.type.folder}/{addon.id}{self.script_ext}"
            return join_location(addon.origin, relative), True

        if is_absolute_url(addon.remote):
            endpoint = addon.remote
        elif addon.origin:
            endpoint = join_location(addon.origin, addon.remote)
        else:
            raise EndpointError(f"无法解析 {addon.id} 的相对端点: {addon.remote}")
        return endpoint, endpoint.endswith(self.script_ext)

    @staticmethod
    def _primary_file(addon: Addon) -> FileArtifact | None:
        """没有 url / remote 且只有一个文件时，该文件即主产物"""
        if not addon.url and not addon.remote and len(addon.files) == 1:
            return addon.files[0]
        return None

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install(
        self, addon: Addon, ctx: InstallContext, dispatcher: InstallDispatcher,
    ) -> None:
        endpoint, singleton = self.endpoint(addon)
        if endpoint in ctx.endpoints:
            raise DependencyCycleError([*ctx.endpoints, endpoint])
        ctx = ctx.fetching(endpoint)
        dest = self.destination(addon)
        logger.info("安装 %s: %s -> %s", addon.id, endpoint, dest)

        if singleton:
            placed = self._install_singleton(endpoint, dest)
        elif addon.path and dest == self.canonical(addon):
            placed = self._fetch_tree(endpoint, dest)
        else:
            result = self._install_directory(addon, endpoint, dest, ctx, dispatcher)
            if result is None:
                return
            placed, addon = result

        self._download_files(addon, placed)
        self._run_post(addon)

    def _install_singleton(self, endpoint: str, dest: Path) -> Path:
        target = self._with_ext(dest)
        content = self.fetcher.read(endpoint)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise InstallError(f"无法写入 {target}: {e}") from e
        return target

    def _install_directory(
        self,
        addon: Addon,
        endpoint: str,
        dest: Path,
        ctx: InstallContext,
        dispatcher: InstallDispatcher,
    ) -> tuple[Path, Addon] | None:
        """克隆到临时目录后按 stub > 单文件 > 普通目录 的优先级落盘

        返回 (落盘路径, 后续附带文件与安装后命令所依据的声明)；
        stub 已经把请求的插件交给解析器安装时返回 None。
        """
        scratch = self._fetch_tree(endpoint)
        try:
            entries = sorted(scratch.iterdir())
            relevant = [e for e in entries if is_relevant(e)]
            stub = next((e for e in entries if e.name.lower() == STUB_MANIFEST and e.is_file()), None)
            if stub is not None:
                return self._install_stub(addon, endpoint, stub, scratch, dest, ctx, dispatcher)
            if len(relevant) == 1:
                return self._place_single(relevant[0], dest), addon
            self._place_tree(scratch, dest)
            return dest, addon
        finally:
            try:
                remove_path(scratch)
            except OSError as e:
                logger.warning("临时目录清理失败 %s: %s", scratch, e)

    def _fetch_tree(self, endpoint: str, target: Path | None = None) -> Path:
        try:
            return self.trees.fetch(endpoint, target)
        except OSError as e:
            raise InstallError(f"无法获取目录树 {endpoint}: {e}") from e

    def _place_single(self, entry: Path, dest: Path) -> Path:
        if entry.is_dir():
            target = dest
        else:
            target = dest if dest.suffix else self._with_ext(dest)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(entry), str(target))
        except OSError as e:
            raise InstallError(f"无法移动 {entry.name} 到 {target}: {e}") from e
        logger.info("检测到单文件插件: %s -> %s", entry.name, target)
        return target

    def _place_tree(self, src: Path, dest: Path) -> None:
        try:
            move_dir_filtered(src, dest)
        except OSError as e:
            try:
                remove_path(dest)
            except OSError:
                logger.warning("残留目录清理失败: %s", dest)
            raise InstallError(f"无法移动目录到 {dest}: {e}") from e

    # ------------------------------------------------------------------
    # stub 清单
    # ------------------------------------------------------------------

    def _install_stub(
        self,
        addon: Addon,
        endpoint: str,
        manifest_path: Path,
        scratch: Path,
        dest: Path,
        ctx: InstallContext,
        dispatcher: InstallDispatcher,
    ) -> tuple[Path, Addon] | None:
        stub = load_manifest_file(manifest_path)
        own = next((a for a in stub.addons if a.id == addon.id), None)
        others = [a for a in stub.addons if a.id != addon.id]
        logger.info("检测到 stub 清单: %s (%d 个插件)", endpoint, len(stub.addons))

        if own is not None and _drifted(addon, own):
            logger.warning(
                "清单漂移 %s: 订阅源声明 %s/%s/%s，仓库内声明 %s/%s/%s，以仓库内为准",
                addon.id, addon.version, addon.mod_version, addon.remote,
                own.version, own.mod_version, own.remote,
            )
        # 自身声明指回正在克隆的端点时，仓库本身就是插件
        inline = own is not None and self._endpoint_or_none(own) == endpoint

        # 批次前未安装的条目，失败时只回滚这些
        absent = [a for a in stub.addons if not self.is_installed(a)]
        self.registry.push_installing(stub.addons)
        try:
            with TaskGroup[Any](self.max_workers) as group:
                for other in others:
                    group.spawn(other.id, dispatcher.install_dependency, other.id, ctx)
                if own is not None and not inline:
                    group.spawn(own.id, dispatcher.install_declared, own, ctx)

            if group.failures:
                self._rollback(absent, dispatcher)
                raise BatchInstallError({o.label: str(o.error) for o in group.failures})
        finally:
            self.registry.pop_installing(stub.addons)

        if inline:
            self._place_tree(scratch, dest)
            return dest, replace(own, origin=addon.origin)
        if own is None:
            # 清单未声明请求的插件本身，仓库内容作为该插件落盘
            self._place_tree(scratch, dest)
            return dest, addon
        return None

    def _endpoint_or_none(self, addon: Addon) -> str | None:
        try:
            return self.endpoint(addon)[0]
        except EndpointError:
            return None

    def _rollback(self, absent: list[Addon], dispatcher: InstallDispatcher) -> None:
        """卸载批次前不存在、现在已落盘的插件，尽力而为

        包括作为其他条目依赖被装上的插件。
        """
        for addon in absent:
            if not self.is_installed(addon):
                continue
            try:
                dispatcher.uninstall(addon.id)
                logger.warning("已回滚: %s", addon.id)
            except (LxlError, OSError) as e:
                logger.warning("回滚失败 %s: %s", addon.id, e)

    # ------------------------------------------------------------------
    # 附带文件与安装后命令
    # ------------------------------------------------------------------

    def _download_files(self, addon: Addon, placed: Path) -> None:
        primary = self._primary_file(addon)
        # 单脚本的附带文件放到同名目录，卸载时随插件一起删除
        base = placed if placed.is_dir() else placed.with_suffix("")
        for artifact in addon.files:
            if artifact is primary:
                continue
            if not artifact.arch.supported():
                logger.debug("跳过不匹配当前平台的文件: %s", artifact.url)
                continue
            try:
                self._download(artifact, base)
            except (LxlError, OSError) as e:
                if artifact.optional:
                    logger.warning("可选文件下载失败，已忽略 %s: %s", artifact.url, e)
                    continue
                if isinstance(e, LxlError):
                    raise
                raise InstallError(f"无法保存 {artifact.url}: {e}") from e

    def _download(self, artifact: FileArtifact, base: Path) -> None:
        if artifact.path:
            target = self.config_root / artifact.path
        else:
            name = urlparse(artifact.url).path.rstrip("/").rsplit("/", 1)[-1]
            if not name:
                raise InstallError(f"无法从 URL 解析文件名: {artifact.url}")
            target = base / name
        content = self.fetcher.read(artifact.url)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.info("  已保存: %s", target)

    def _run_post(self, addon: Addon) -> None:
        cmd = addon.post.resolve()
        if not cmd:
            return
        try:
            self.config_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InstallError(f"无法创建配置目录 {self.config_root}: {e}") from e
        run_checked(
            self.commands, cmd, cwd=str(self.config_root),
            label=f"{addon.id} 安装后命令", capture=False,
        )


def _drifted(requested: Addon, declared: Addon) -> bool:
    return (
        requested.version != declared.version
        or requested.mod_version != declared.mod_version
        or requested.remote != declared.remote
    )
