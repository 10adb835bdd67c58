"""CLI：插件安装 / 卸载 / 查询命令"""

from __future__ import annotations

import click

from lxl.cli import _execute, _svc, output


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(uninstall)
    group.add_command(find)
    group.add_command(list_installed)


@click.command()
@click.argument("addon_id")
def install(addon_id: str) -> None:
    """安装插件（含依赖）"""
    addon = _execute("install", _svc().resolver.install, addon_id)
    click.echo(f"  {addon.id} {addon.version}".rstrip())


@click.command()
@click.argument("addon_id")
def uninstall(addon_id: str) -> None:
    """卸载插件"""
    _execute("uninstall", _svc().resolver.uninstall, addon_id)


@click.command()
@click.argument("keyword", default="")
def find(keyword: str) -> None:
    """在订阅源中查找插件（按 id 子串匹配）"""
    resolver = _svc().resolver
    _execute("find", lambda: output.show_addons("查找", resolver.find(keyword)))


@click.command(name="list")
@click.argument("keyword", default="")
def list_installed(keyword: str) -> None:
    """列出本地已安装插件"""
    resolver = _svc().resolver
    _execute("list", lambda: output.show_addons("已安装", resolver.list_installed(keyword)))
