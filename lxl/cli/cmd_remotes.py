"""CLI：订阅源管理命令"""

from __future__ import annotations

import click

from lxl.cli import _execute, _svc, output


def register(group: click.Group) -> None:
    group.add_command(subscribe)
    group.add_command(unsubscribe)
    group.add_command(remotes)


@click.command()
@click.argument("remote")
def subscribe(remote: str) -> None:
    """订阅新的清单源（GitHub 链接会转为 raw 地址）"""
    svc = _svc()
    url = _execute("subscribe", svc.registry.add_remote, remote, svc.fetcher.get)
    click.echo(f"  {url}")


@click.command()
@click.argument("remote")
def unsubscribe(remote: str) -> None:
    """退订清单源（需与列表中的地址完全一致）"""
    _execute("unsubscribe", _svc().registry.remove_remote, remote)


@click.command()
@click.argument("keyword", default="")
def remotes(keyword: str) -> None:
    """列出订阅源及其健康状态"""
    aggregator = _svc().aggregator

    def _show() -> None:
        rows = [r for r in aggregator.remote_health() if keyword in r.url]
        output.show_remotes(rows)

    _execute("remotes", _show)
