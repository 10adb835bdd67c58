"""lxl 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
只有这一层打印错误并决定退出码。
"""

import os
import sys
from typing import Any, Callable

import click

from lxl import __version__
from lxl.cli import output
from lxl.core.config import init_config
from lxl.core.exceptions import LxlError
from lxl.services.container import get_container
from lxl.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


def _execute(name: str, fn: Callable[..., Any], *args: Any) -> Any:
    """执行命令主体：成功打印提示，LxlError 打印错误并以 1 退出"""
    try:
        result = fn(*args)
    except LxlError as e:
        output.danger(f"无法执行 {name}", str(e))
        sys.exit(1)
    output.success(name, "执行成功")
    return result


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """lxl - Lite XL 插件包管理器"""
    setup_logging(
        level=os.getenv("LXL_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("LXL_LOG_JSON", "") == "1",
    )
    init_config(os.getenv("LXL_CONFIG", ""))
    _svc().aggregator.on_discovery = output.show_discovery


@main.command(name="help")
def show_help() -> None:
    """显示用法"""
    output.success("help", output.USAGE)


# 注册各领域子命令
from lxl.cli.cmd_addons import register as _reg_addons  # noqa: E402
from lxl.cli.cmd_remotes import register as _reg_remotes  # noqa: E402

_reg_addons(main)
_reg_remotes(main)
