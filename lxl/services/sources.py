"""目录树来源适配器 - Git / 本地目录

职责：
- 解析仓库链接（末尾 :ref 指定提交，last / latest 表示默认分支）
- Git 仓库 clone + checkout
- 本地目录复制（stub 清单中的相对端点会解析到已克隆的临时目录）
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from lxl.core.exceptions import ExecutionError, InstallError, MalformedLinkError
from lxl.utils.shell import CommandExecutor, LocalExecutor, run_checked

logger = logging.getLogger(__name__)

_REPO_LINK_RE = re.compile(r"^(https?://[\w\-/.]+/([\w\-.]+)):?(\w+)?$")
_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@\-]+$")
_DEFAULT_BRANCH_REFS = frozenset(("last", "latest"))


@dataclass(frozen=True)
class RepoLink:
    url: str
    name: str  # 仓库名，带 .git
    ref: str = ""  # 空表示默认分支


def parse_repo_link(endpoint: str) -> RepoLink:
    """解析 https://host/owner/repo[.git][:ref]"""
    m = _REPO_LINK_RE.match(endpoint)
    if m is None:
        raise MalformedLinkError(f"仓库链接格式错误: {endpoint}")
    url, name, ref = m.group(1), m.group(2), m.group(3) or ""
    if ref in _DEFAULT_BRANCH_REFS:
        ref = ""

    suffix = Path(name).suffix
    if suffix == "":
        name += ".git"
    elif suffix != ".git":
        raise MalformedLinkError(f"不支持的仓库扩展名 '{suffix}': {endpoint}")
    return RepoLink(url=url, name=name, ref=ref)


class GitSource:
    """Git 仓库来源"""

    def __init__(self, executor: CommandExecutor | None = None) -> None:
        self.executor = executor or LocalExecutor()

    def fetch(self, endpoint: str, target: Path | None = None) -> Path:
        link = parse_repo_link(endpoint)
        if link.ref and not _SAFE_REF_RE.match(link.ref):
            raise MalformedLinkError(f"ref 包含非法字符: {link.ref}")

        try:
            if target is None:
                target = Path(tempfile.mkdtemp(prefix=f"{link.name}-"))
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InstallError(f"无法准备克隆目录: {e}") from e

        logger.info("克隆仓库: %s -> %s", link.url, target)
        try:
            run_checked(
                self.executor, ["git", "clone", link.url, str(target)], label="git clone",
            )
        except ExecutionError as e:
            raise ExecutionError(f"无法克隆仓库 {link.url}: {e}") from e

        if link.ref:
            try:
                run_checked(
                    self.executor,
                    ["git", "-C", str(target), "checkout", link.ref],
                    label="git checkout",
                )
            except ExecutionError as e:
                raise ExecutionError(f"无法切换到 {link.ref}: {e}") from e
        return target


class LocalSource:
    """本地目录来源"""

    def fetch(self, endpoint: str, target: Path | None = None) -> Path:
        src = Path(endpoint)
        try:
            if target is None:
                target = Path(tempfile.mkdtemp(prefix=f"{src.name}-"))
            shutil.copytree(src, target, dirs_exist_ok=True)
        except OSError as e:
            raise InstallError(f"无法复制目录 {src}: {e}") from e
        logger.info("本地目录就绪: %s -> %s", src, target)
        return target


class TreeFetcher:
    """按端点类型分派：已存在的本地目录走复制，其余走 git"""

    def __init__(
        self,
        git_source: GitSource | None = None,
        local_source: LocalSource | None = None,
    ) -> None:
        self._git = git_source or GitSource()
        self._local = local_source or LocalSource()

    def fetch(self, endpoint: str, target: Path | None = None) -> Path:
        if Path(endpoint).is_dir():
            return self._local.fetch(endpoint, target)
        return self._git.fetch(endpoint, target)
