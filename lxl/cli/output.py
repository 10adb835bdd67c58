"""CLI 输出渲染

所有面向终端的彩色输出集中在这里，命令实现只组织数据。
"""

from __future__ import annotations

from collections.abc import Sequence

import click

from lxl.core.exceptions import AddonNotFoundError, RemoteError
from lxl.core.models import Addon, AddonType, RemoteHealth

USAGE = (
    "用法:\n"
    " lxl <install|uninstall|find|list> <插件ID>\n"
    " lxl <subscribe|unsubscribe|remotes> <订阅源>"
)

_TYPE_COLORS = {
    AddonType.PLUGIN: "blue",
    AddonType.FONT: "magenta",
    AddonType.LIBRARY: "cyan",
    AddonType.COLOR: "yellow",
    AddonType.META: "white",
}

_SNIPPET_WIDTH = 40


def _badge(text: str, bg: str, fg: str = "bright_white") -> str:
    return click.style(f" {text} ", fg=fg, bg=bg, bold=True)


def _line(prefix: str, color: str, title: str, detail: str = "") -> None:
    head = _badge(prefix.strip(), color) + " " + click.style(title, fg=color, bold=True)
    click.echo(head + (f" {detail}" if detail else ""))


def success(title: str, detail: str = "") -> None:
    _line("v", "green", title, detail)


def warn(title: str, detail: str = "") -> None:
    _line("!", "yellow", title, detail)


def danger(title: str, detail: str = "") -> None:
    _line("X", "red", title, detail)


def command_hint(cmd: str) -> None:
    click.secho(f" $ {cmd}", fg="bright_black", bold=True)


def _icon(addon_type: AddonType) -> str:
    return _badge(addon_type.value[0].upper(), _TYPE_COLORS[addon_type])


def snippet(addon: Addon, width: int = _SNIPPET_WIDTH) -> str:
    desc = addon.description
    if len(desc) > width:
        desc = desc[: width - 3] + "..."
    name = click.style(f" {addon.id}", fg=_TYPE_COLORS[addon.type])
    return f"{_icon(addon.type)}{name}\t{desc}"


def showcase(addon: Addon) -> None:
    color = _TYPE_COLORS[addon.type]
    version = f"\tv. {addon.version}" if addon.version else ""
    click.echo(
        _badge(addon.type.value.upper(), color)
        + click.style(f"\t{addon.id}", fg=color)
        + version
    )
    if addon.description:
        click.echo(f"描述: {addon.description}")
    click.echo("\n安装最新版本:")
    command_hint(f"lxl install {addon.id}")


def show_addons(header: str, addons: Sequence[Addon]) -> None:
    """单个结果展开显示，多个结果逐行摘要"""
    if not addons:
        raise AddonNotFoundError("找不到匹配的插件")
    if len(addons) == 1:
        success(header, "找到 1 个匹配的插件")
        showcase(addons[0])
    else:
        success(header, f"找到 {len(addons)} 个匹配的插件")
        for addon in addons:
            click.echo(f"  {snippet(addon)}")
    click.echo()


def format_remote(health: RemoteHealth) -> str:
    parts = [" >"]
    if not health.ok:
        parts.append(_badge("BROKEN", "red"))
    if health.official:
        parts.append(_badge("OFFICIAL", "green"))
    if health.total:
        parts.append(_badge(f"{health.total} ADDONS", "bright_white", fg="black"))
        for addon_type in AddonType:
            count = health.counts.get(addon_type.value, 0)
            if count:
                parts.append(f"{_icon(addon_type)}{count}")
        return " ".join(parts) + f"\n   {health.url}"
    return " ".join(parts) + f" {health.url}"


def show_remotes(rows: Sequence[RemoteHealth]) -> None:
    if not rows:
        raise RemoteError("没有找到订阅源")
    if len(rows) == 1:
        success("找到 1 个订阅源", "详情:")
    else:
        success(f"找到 {len(rows)} 个订阅源", "订阅源列表:")
    for row in rows:
        click.echo(format_remote(row))
        if row.error:
            click.secho(f"   {row.error}", fg="red")

    click.echo("\n管理订阅源:\n 新增订阅源")
    command_hint("lxl subscribe <remote>")
    click.echo(" 移除订阅源")
    command_hint("lxl unsubscribe <remote>")
    warn("订阅地址会被规范化", "GitHub 页面链接会转换为 raw 地址后写入列表")


def show_discovery(urls: Sequence[str]) -> None:
    """清单中引用了未订阅的源，只提示不订阅"""
    warn("发现新的订阅源", f"{len(urls)} 个，可按需订阅:")
    for url in urls:
        command_hint(f"lxl subscribe {url}")
