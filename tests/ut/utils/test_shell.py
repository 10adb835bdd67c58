"""Shell 执行工具测试"""

from __future__ import annotations

import sys

import pytest

from lxl.core.exceptions import ExecutionError
from lxl.utils.shell import CommandResult, LocalExecutor, run_checked


class _Recorder:
    def __init__(self, rc: int) -> None:
        self.rc = rc
        self.seen: list[tuple] = []

    def execute(self, cmd, *, cwd=".", capture=True) -> CommandResult:
        self.seen.append((cmd, cwd, capture))
        return CommandResult(self.rc, stderr="denied")


class TestRunChecked:
    def test_success_passes_through(self) -> None:
        rec = _Recorder(0)
        r = run_checked(rec, "make install", cwd="/tmp", capture=False)
        assert r.success
        assert rec.seen == [("make install", "/tmp", False)]

    def test_failure_raises_with_label(self) -> None:
        with pytest.raises(ExecutionError, match=r"安装后命令失败 \(rc=2\): denied"):
            run_checked(_Recorder(2), "false", label="安装后命令")


class TestLocalExecutor:
    def test_captures_output(self) -> None:
        r = LocalExecutor().execute([sys.executable, "-c", "print('hi')"])
        assert r.success
        assert r.stdout.strip() == "hi"

    def test_missing_binary(self) -> None:
        with pytest.raises(ExecutionError, match="无法启动命令"):
            LocalExecutor().execute(["definitely-not-a-real-binary-xyz"])
