"""网络工具：URL 校验、端点拼接、单次 HTTP GET"""

from __future__ import annotations

import logging
import re
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import urljoin, urlparse

from lxl.core.exceptions import InstallError, TransportError, ValidationError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")

# 错误信息中保留的响应体长度
_BODY_PREVIEW = 300


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def is_absolute_url(text: str) -> bool:
    """以 URL scheme 开头即视为绝对地址"""
    return bool(_SCHEME_RE.match(text))


def join_location(base: str, relative: str) -> str:
    """以清单文档所在位置为基准解析相对端点

    base 是清单本身的地址（URL 或本地文件路径），
    相对端点与清单文件处于同一目录层级。
    """
    if is_absolute_url(base):
        return urljoin(base, relative)
    return str(Path(base).parent / relative)


class HttpFetcher:
    """远程拉取器：一次 GET 返回原始字节"""

    def __init__(self, timeout: int = 30) -> None:
        self.timeout = timeout

    def get(self, url: str) -> bytes:
        validate_url_scheme(url, context="fetch")
        logger.debug("GET %s", url)
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as resp:  # nosec B310
                body = resp.read()
                status = resp.status
        except urllib.error.HTTPError as e:
            preview = e.read()[:_BODY_PREVIEW].decode("utf-8", "replace")
            raise TransportError(
                f"[{e.code}] endpoint: {url}, body: {preview}", status=e.code,
            ) from e
        except (urllib.error.URLError, OSError) as e:
            raise TransportError(f"请求失败: {url} - {e}") from e

        if status > 299:
            preview = body[:_BODY_PREVIEW].decode("utf-8", "replace")
            raise TransportError(
                f"[{status}] endpoint: {url}, body: {preview}", status=status,
            )
        return body

    def read(self, endpoint: str) -> bytes:
        """HTTP(S) 端点走 GET，其余按本地文件读取"""
        if endpoint.startswith(("http://", "https://")):
            return self.get(endpoint)
        try:
            return Path(endpoint).read_bytes()
        except OSError as e:
            raise InstallError(f"无法读取本地文件 {endpoint}: {e}") from e
