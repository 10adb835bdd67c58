"""Shell 命令执行工具：统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，安装后命令与 git 调用都经由这里，
测试时注入 mock 实现即可，无需 patch subprocess。
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from typing import Protocol

from lxl.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议

    capture=False 时子进程直接继承当前进程的 stdin/stdout，
    用于需要与用户交互的安装后命令。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        capture: bool = True,
    ) -> CommandResult:
        ...


class LocalExecutor:
    """本地子进程执行器（默认实现）"""

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        capture: bool = True,
    ) -> CommandResult:
        args = _split(cmd) if isinstance(cmd, str) else cmd
        try:
            if capture:
                r = subprocess.run(
                    args, capture_output=True, text=True, cwd=cwd, check=False,
                )
                return CommandResult(r.returncode, r.stdout, r.stderr)
            r = subprocess.run(
                args, stdin=sys.stdin, stdout=sys.stdout, cwd=cwd, check=False,
            )
        except OSError as e:
            raise ExecutionError(f"无法启动命令 {args[0] if args else cmd}: {e}") from e
        return CommandResult(r.returncode)


def _split(cmd: str) -> list[str]:
    return shlex.split(cmd, posix=sys.platform != "win32")


def run_checked(
    executor: CommandExecutor,
    cmd: str | list[str],
    *,
    cwd: str = ".",
    label: str = "cmd",
    capture: bool = True,
) -> CommandResult:
    """执行命令，非零退出码抛 ExecutionError

    Args:
        executor: 命令执行器
        cmd: 命令字符串或参数列表
        cwd: 工作目录
        label: 日志与错误信息中的标签
        capture: False 时继承标准输入输出
    """
    logger.info("  %s: %s (cwd=%s)", label, cmd, cwd)
    r = executor.execute(cmd, cwd=cwd, capture=capture)
    if not r.success:
        raise ExecutionError(f"{label}失败 (rc={r.returncode}): {r.stderr[:500]}")
    return r
