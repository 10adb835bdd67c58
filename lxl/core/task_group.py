"""结构化并发：一次扇出，全部等待，逐个收集结果

每个扇出点（订阅源拉取、健康检查、stub 批量安装）创建一个短生命周期的
TaskGroup。任务完成顺序不作保证；join 会等待所有已派发任务结束，
不会因为某个任务失败而取消兄弟任务。
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TaskOutcome(Generic[T]):
    """单个任务的结果：value 与 error 二选一"""

    label: str
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskGroup(Generic[T]):
    """用法:
        with TaskGroup(max_workers=8) as group:
            for url in remotes:
                group.spawn(url, fetch, url)
        for outcome in group.outcomes: ...
    """

    def __init__(self, max_workers: int = 8) -> None:
        self.max_workers = max(1, max_workers)
        self._pool: ThreadPoolExecutor | None = None
        self._futures: dict[Future[T], str] = {}
        self.outcomes: list[TaskOutcome[T]] = []

    def __enter__(self) -> TaskGroup[T]:
        self._pool = ThreadPoolExecutor(max_workers=self.max_workers)
        return self

    def __exit__(self, *exc: Any) -> None:
        self.join()

    def spawn(self, label: str, fn: Callable[..., T], *args: Any) -> None:
        if self._pool is None:
            raise RuntimeError("TaskGroup 未启动，请在 with 语句中使用")
        self._futures[self._pool.submit(fn, *args)] = label

    def join(self) -> list[TaskOutcome[T]]:
        """按完成顺序收集结果，返回后线程池已关闭"""
        if self._pool is None:
            return self.outcomes
        try:
            for future in as_completed(self._futures):
                label = self._futures[future]
                error = future.exception()
                if error is None:
                    self.outcomes.append(TaskOutcome(label, value=future.result()))
                else:
                    logger.debug("任务失败 %s: %s", label, error)
                    self.outcomes.append(TaskOutcome(label, error=error))
        finally:
            self._pool.shutdown(wait=True)
            self._pool = None
            self._futures = {}
        return self.outcomes

    @property
    def failures(self) -> list[TaskOutcome[T]]:
        return [o for o in self.outcomes if not o.ok]
