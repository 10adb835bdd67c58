"""TaskGroup 测试：全部等待、失败不取消兄弟任务"""

import threading
import time

from lxl.core.task_group import TaskGroup


def _boom(_: int) -> int:
    raise RuntimeError("boom")


class TestTaskGroup:
    def test_collects_values_and_errors(self) -> None:
        with TaskGroup[int](4) as group:
            group.spawn("a", lambda x: x * 2, 1)
            group.spawn("b", _boom, 2)
            group.spawn("c", lambda x: x * 2, 3)
        values = {o.label: o.value for o in group.outcomes if o.ok}
        assert values == {"a": 2, "c": 6}
        assert [o.label for o in group.failures] == ["b"]
        assert isinstance(group.failures[0].error, RuntimeError)

    def test_failure_does_not_cancel_siblings(self) -> None:
        done = threading.Event()

        def slow() -> str:
            time.sleep(0.05)
            done.set()
            return "slow"

        with TaskGroup[str](2) as group:
            group.spawn("fail", _boom, 0)
            group.spawn("slow", slow)
        assert done.is_set()
        assert len(group.outcomes) == 2

    def test_empty_group(self) -> None:
        with TaskGroup[int](2) as group:
            pass
        assert group.outcomes == [] and group.failures == []
