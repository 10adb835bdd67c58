"""测试公共替身：内存拉取器、目录树来源、命令执行器"""

from __future__ import annotations

import json
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable

import pytest

from lxl.core.config import Config
from lxl.core.exceptions import ExecutionError, TransportError
from lxl.services.container import ServiceContainer, reset_container
from lxl.utils.shell import CommandResult

REMOTE = "https://example.com/lxl/manifest.json"


def catalog(*addons: dict, remotes: list[str] | None = None) -> bytes:
    """构造清单文档字节"""
    doc: dict[str, Any] = {"addons": list(addons)}
    if remotes:
        doc["remotes"] = remotes
    return json.dumps(doc).encode()


class FakeFetcher:
    """URL -> 字节；未登记的 URL 抛 TransportError，本地路径读真实文件"""

    def __init__(self, pages: dict[str, bytes] | None = None) -> None:
        self.pages = dict(pages or {})
        self.calls: list[str] = []
        self.before_read: Callable[[str], None] | None = None
        self._lock = threading.Lock()

    def get(self, url: str) -> bytes:
        with self._lock:
            self.calls.append(url)
        if self.before_read is not None:
            self.before_read(url)
        if url not in self.pages:
            raise TransportError(f"[404] endpoint: {url}", status=404)
        return self.pages[url]

    def read(self, endpoint: str) -> bytes:
        if endpoint.startswith(("http://", "https://")):
            return self.get(endpoint)
        with self._lock:
            self.calls.append(endpoint)
        return Path(endpoint).read_bytes()


class FakeTrees:
    """端点 -> {相对路径: 内容}；fetch 时把文件写到目标目录"""

    def __init__(self, trees: dict[str, dict[str, str]] | None = None) -> None:
        self.trees = dict(trees or {})
        self.calls: list[tuple[str, Path | None]] = []
        self.scratches: list[Path] = []

    def fetch(self, endpoint: str, target: Path | None = None) -> Path:
        self.calls.append((endpoint, target))
        if endpoint not in self.trees:
            raise ExecutionError(f"无法克隆仓库 {endpoint}")
        if target is None:
            target = Path(tempfile.mkdtemp(prefix="fake-"))
            self.scratches.append(target)
        for rel, content in self.trees[endpoint].items():
            path = target / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return target


class FakeCommands:
    """记录命令，按预设返回码结束"""

    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.calls: list[dict[str, Any]] = []

    def execute(self, cmd: str | list[str], *, cwd: str = ".", capture: bool = True) -> CommandResult:
        self.calls.append({"cmd": cmd, "cwd": cwd, "capture": capture})
        return CommandResult(self.returncode, stderr="boom" if self.returncode else "")


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    return Config(
        config_root=str(tmp_path / "lite-xl"),
        default_remotes=[REMOTE],
        max_workers=4,
        lock_timeout=5,
    )


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
def trees() -> FakeTrees:
    return FakeTrees()


@pytest.fixture()
def commands() -> FakeCommands:
    return FakeCommands()


@pytest.fixture()
def container(
    config: Config, fetcher: FakeFetcher, trees: FakeTrees, commands: FakeCommands,
) -> ServiceContainer:
    reset_container()
    yield ServiceContainer(config, fetcher=fetcher, trees=trees, commands=commands)
    reset_container()
