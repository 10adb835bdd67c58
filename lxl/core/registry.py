"""订阅源注册表

职责:
- 从 <config_root>/lxl/status.yml 加载订阅源列表（首次运行写入默认源）
- 订阅 / 退订并持久化
- 持有进程级的聚合清单缓存与正在安装的插件列表

注册表在进程入口构造一次，显式传给聚合器、解析器与执行器。
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable
from urllib.parse import urlparse, urlunparse

import yaml

from lxl.core.exceptions import ConfigError, LxlError, RemoteError
from lxl.core.manifest import parse_manifest
from lxl.core.models import Addon, Manifest
from lxl.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"
GITHUB_RAW_HOST = "raw.githubusercontent.com"

_DEFAULT_BRANCH_REFS = frozenset(("last", "latest"))

# 校验订阅源时使用：给定 URL 返回原始字节
Getter = Callable[[str], bytes]


def split_ref(reference: str) -> tuple[str, str]:
    """拆出末尾的 :ref 后缀；scheme 的冒号不算"""
    idx = reference.rfind(":")
    if idx <= 0 or reference[idx + 1:].startswith("//"):
        return reference, ""
    tail = reference[idx + 1:]
    if "/" in tail:
        return reference, ""
    return reference[:idx], tail


def _strip_default_ref(reference: str) -> str:
    base, ref = split_ref(reference)
    if ref and ref not in _DEFAULT_BRANCH_REFS:
        raise RemoteError(f"订阅源不支持指定提交: {reference}")
    return base


def _remote_key(url: str) -> tuple[str, str] | None:
    parsed = urlparse(url)
    host = parsed.netloc.lower()
    path = parsed.path.rstrip("/")
    if not host or not path:
        return None
    if host == GITHUB_HOST:
        host, path = GITHUB_RAW_HOST, path.replace("/blob/", "/", 1)
    return host, path


class RemoteRegistry:
    """订阅源注册表 + 聚合清单缓存"""

    def __init__(
        self,
        status_path: Path,
        default_remotes: list[str] | None = None,
        official_prefix: str = "",
    ) -> None:
        self.status_path = status_path
        self.default_remotes = list(default_remotes or [])
        self.official_prefix = official_prefix
        self.remotes: list[str] = []
        self.manifest: Manifest | None = None
        self.discovered: list[str] = []
        self._installing: list[Addon] = []
        self._lock = threading.Lock()
        self._loaded = False

    # ------------------------------------------------------------------
    # 持久化
    # ------------------------------------------------------------------

    def load(self) -> RemoteRegistry:
        """读取状态文件；不存在时用默认源初始化并立即写回"""
        if self._loaded:
            return self
        try:
            data = load_yaml(self.status_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"无法读取订阅状态 {self.status_path}: {e}") from e

        if not self.status_path.exists():
            self.remotes = list(self.default_remotes)
            logger.info("首次运行，写入默认订阅源: %s", self.status_path)
            self._loaded = True
            self.save()
            return self

        remotes = data.get("remotes") or []
        if not isinstance(remotes, list):
            raise ConfigError(f"订阅状态格式错误: {self.status_path}")
        self.remotes = [str(r) for r in remotes]
        self._loaded = True
        return self

    def save(self) -> None:
        try:
            save_yaml(self.status_path, {"remotes": self.remotes})
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"无法保存订阅状态 {self.status_path}: {e}") from e

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def retrieve(self, addon_id: str) -> Addon | None:
        """先查正在安装的列表，再查聚合清单"""
        with self._lock:
            for addon in reversed(self._installing):
                if addon.id == addon_id:
                    return addon
        if self.manifest is not None:
            for addon in self.manifest.addons:
                if addon.id == addon_id:
                    return addon
        return None

    def has_remote(self, reference: str) -> bool:
        """按 host + 路径判断是否已订阅，忽略 scheme，github 与 raw 地址视为同一源"""
        key = _remote_key(_strip_default_ref(reference))
        if key is None:
            return False
        return any(_remote_key(item) == key for item in self.remotes)

    def is_official(self, url: str) -> bool:
        return bool(self.official_prefix) and url.startswith(self.official_prefix)

    # ------------------------------------------------------------------
    # 正在安装列表
    # ------------------------------------------------------------------

    def push_installing(self, addons: list[Addon]) -> None:
        with self._lock:
            self._installing.extend(addons)

    def pop_installing(self, addons: list[Addon]) -> None:
        with self._lock:
            for addon in addons:
                for i, item in enumerate(self._installing):
                    if item is addon:
                        del self._installing[i]
                        break

    # ------------------------------------------------------------------
    # 订阅 / 退订
    # ------------------------------------------------------------------

    def normalize(self, reference: str, getter: Getter | None = None) -> str:
        """GitHub 链接转为 raw 地址；其他主机必须能拉取并解析为清单"""
        reference = _strip_default_ref(reference)
        parsed = urlparse(reference)
        host = parsed.netloc.lower()
        if host == GITHUB_HOST:
            path = parsed.path.replace("/blob/", "/", 1)
            return urlunparse(parsed._replace(netloc=GITHUB_RAW_HOST, path=path))
        if host == GITHUB_RAW_HOST:
            return reference

        if getter is None:
            raise RemoteError(f"无法校验订阅源: {reference}")
        try:
            parse_manifest(getter(reference), reference)
        except LxlError as e:
            raise RemoteError(f"无法使用订阅源 {reference}: {e}") from e
        return reference

    def add_remote(self, reference: str, getter: Getter | None = None) -> str:
        """订阅新源，返回实际写入的地址"""
        self.load()
        url = self.normalize(reference, getter)
        if url in self.remotes:
            raise RemoteError(f"订阅源 {url} 已存在")
        self.remotes.append(url)
        self.save()
        logger.info("已订阅: %s", url)
        return url

    def remove_remote(self, reference: str) -> None:
        self.load()
        if reference not in self.remotes:
            raise RemoteError(f"找不到订阅源 {reference}")
        self.remotes.remove(reference)
        self.save()
        logger.info("已退订: %s", reference)
