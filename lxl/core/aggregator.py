"""订阅源聚合器

职责:
- 并发拉取全部订阅源清单并合并
- 按 id 去重
- 发现清单中引用的新订阅源，只提示不自动订阅
- 订阅源健康检查（remotes 命令）

单个源失败只记警告；全部失败才报 NoValidRemoteError。
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Callable

from lxl.core.exceptions import LxlError, NoValidRemoteError
from lxl.core.manifest import parse_manifest
from lxl.core.models import Addon, Manifest, RemoteHealth
from lxl.core.protocols import ContentFetcher
from lxl.core.registry import RemoteRegistry
from lxl.core.task_group import TaskGroup

logger = logging.getLogger(__name__)

# 发现新订阅源时的回调，参数为未订阅的地址列表
DiscoveryHandler = Callable[[list[str]], None]


class CatalogAggregator:
    """多订阅源清单聚合器"""

    def __init__(
        self,
        registry: RemoteRegistry,
        fetcher: ContentFetcher,
        max_workers: int = 8,
        on_discovery: DiscoveryHandler | None = None,
    ) -> None:
        self.registry = registry
        self.fetcher = fetcher
        self.max_workers = max_workers
        self.on_discovery = on_discovery

    def fetch_remote(self, location: str) -> Manifest:
        """拉取并解析单个订阅源，origin 即订阅地址"""
        return parse_manifest(self.fetcher.read(location), location)

    def fetch(self) -> Manifest:
        """返回聚合清单；同一进程内只拉取一次"""
        if self.registry.manifest is not None:
            return self.registry.manifest

        remotes = list(self.registry.load().remotes)
        with TaskGroup[Manifest](self.max_workers) as group:
            for url in remotes:
                group.spawn(url, self.fetch_remote, url)

        addons: list[Addon] = []
        referenced: list[str] = []
        for outcome in group.outcomes:
            if not outcome.ok:
                logger.warning("订阅源不可用 %s: %s", outcome.label, outcome.error)
                continue
            addons.extend(outcome.value.addons)
            referenced.extend(outcome.value.remotes)

        if len(group.failures) == len(remotes):
            raise NoValidRemoteError("没有可用的订阅源")

        merged = Manifest(addons=dedupe(addons))
        self.registry.manifest = merged
        logger.info(
            "已聚合 %d 个订阅源, %d 个插件 (%d 个源失败)",
            len(remotes) - len(group.failures), len(merged.addons), len(group.failures),
        )
        self._announce(referenced)
        return merged

    def _announce(self, referenced: list[str]) -> None:
        fresh: list[str] = []
        for ref in referenced:
            if ref in fresh:
                continue
            try:
                known = self.registry.has_remote(ref)
            except (LxlError, ValueError) as e:
                logger.warning("忽略无效的关联源 %s: %s", ref, e)
                continue
            if not known:
                fresh.append(ref)
        if not fresh:
            return
        self.registry.discovered.extend(fresh)
        if self.on_discovery is not None:
            self.on_discovery(fresh)

    def remote_health(self) -> list[RemoteHealth]:
        """并发重新拉取每个源，按注册顺序返回健康状态"""
        remotes = list(self.registry.load().remotes)
        with TaskGroup[RemoteHealth](self.max_workers) as group:
            for url in remotes:
                group.spawn(url, self._probe, url)
        by_url = {o.label: o.value for o in group.outcomes if o.ok}
        return [by_url[url] for url in remotes if url in by_url]

    def _probe(self, url: str) -> RemoteHealth:
        official = self.registry.is_official(url)
        try:
            manifest = self.fetch_remote(url)
        except LxlError as e:
            return RemoteHealth(url=url, ok=False, official=official, error=str(e))
        counts = Counter(a.type.value for a in manifest.addons)
        return RemoteHealth(url=url, ok=True, official=official, counts=dict(counts))


def dedupe(addons: list[Addon]) -> list[Addon]:
    """按 id 去重，保留先出现者（并发完成顺序决定，不保证是哪个版本）"""
    seen: set[str] = set()
    result: list[Addon] = []
    for addon in addons:
        if addon.id in seen:
            continue
        seen.add(addon.id)
        result.append(addon)
    return result
