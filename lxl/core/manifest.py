"""清单解析器

职责:
- 原始字节 -> Manifest
- 归一化 arch / post / type 等多态字段
- 为每个插件打上来源位置 origin，供相对端点解析
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from lxl.core.exceptions import ManifestParseError
from lxl.core.models import (
    Addon,
    AddonType,
    ArchFilter,
    ClientRelease,
    Dependency,
    FileArtifact,
    Manifest,
    PostCommand,
)

logger = logging.getLogger(__name__)


def parse_manifest(raw: bytes | str, origin: str) -> Manifest:
    """解析清单文档，任何结构错误都以 ManifestParseError 报出并带上来源"""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestParseError(f"清单解析失败 {origin}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestParseError(f"清单解析失败 {origin}: 顶层必须是对象")

    try:
        addons = [_parse_addon(item, origin) for item in _list(data, "addons")]
        remotes = [str(r) for r in _list(data, "remotes")]
        clients = [_parse_client(item) for item in _list(data, "lite-xls")]
    except (TypeError, ValueError, KeyError) as e:
        raise ManifestParseError(f"清单解析失败 {origin}: {e}") from e

    logger.debug("清单 %s: %d 个插件, %d 个关联源", origin, len(addons), len(remotes))
    return Manifest(addons=addons, remotes=remotes, lite_xls=clients)


def load_manifest_file(path: Path) -> Manifest:
    """读取本地清单文件，origin 为文件本身路径"""
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ManifestParseError(f"无法读取清单 {path}: {e}") from e
    return parse_manifest(raw, str(path))


# =========================================================================
# 字段解析
# =========================================================================


def _list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"'{key}' 必须是数组")
    return value


def _strings(data: dict[str, Any], key: str) -> list[str]:
    return [str(x) for x in _list(data, key)]


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"'{key}' 必须是字符串")
    return value


def _parse_addon(item: Any, origin: str) -> Addon:
    if not isinstance(item, dict):
        raise TypeError("addons 条目必须是对象")
    addon_id = item.get("id")
    if not isinstance(addon_id, str) or not addon_id:
        raise ValueError("插件缺少 id")
    type_name = item.get("type") or AddonType.PLUGIN.value
    try:
        addon_type = AddonType(type_name)
    except ValueError:
        raise ValueError(f"插件 {addon_id} 的类型无法识别: {type_name}") from None

    return Addon(
        id=addon_id,
        version=str(item.get("version") or ""),
        mod_version=item.get("mod_version"),
        type=addon_type,
        name=_text(item, "name"),
        description=_text(item, "description"),
        provides=_strings(item, "provides"),
        replaces=_strings(item, "replaces"),
        remote=_text(item, "remote"),
        dependencies=_parse_deps(item.get("dependencies")),
        conflicts=_parse_deps(item.get("conflicts")),
        tags=_strings(item, "tags"),
        path=_text(item, "path"),
        arch=ArchFilter.parse(item.get("arch")),
        post=PostCommand.parse(item.get("post")),
        url=_text(item, "url"),
        checksum=_text(item, "checksum"),
        extra=dict(item.get("extra") or {}),
        files=[_parse_file(f) for f in _list(item, "files")],
        origin=origin,
    )


def _parse_deps(raw: Any) -> dict[str, Dependency]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise TypeError("dependencies/conflicts 必须是对象")
    deps: dict[str, Dependency] = {}
    for name, spec in raw.items():
        spec = spec or {}
        if isinstance(spec, str):
            deps[name] = Dependency(version=spec)
            continue
        if not isinstance(spec, dict):
            raise TypeError(f"依赖 {name} 的声明必须是对象")
        deps[name] = Dependency(
            version=str(spec.get("version", "")),
            optional=bool(spec.get("optional", False)),
        )
    return deps


def _parse_file(raw: Any) -> FileArtifact:
    if not isinstance(raw, dict) or not _text(raw, "url"):
        raise ValueError("files 条目缺少 url")
    return FileArtifact(
        url=raw["url"],
        checksum=_text(raw, "checksum"),
        arch=ArchFilter.parse(raw.get("arch")),
        path=_text(raw, "path"),
        optional=bool(raw.get("optional", False)),
    )


def _parse_client(raw: Any) -> ClientRelease:
    if not isinstance(raw, dict):
        raise TypeError("lite-xls 条目必须是对象")
    return ClientRelease(
        version=str(raw.get("version", "")),
        mod_version=raw.get("mod_version"),
        files=[_parse_file(f) for f in _list(raw, "files")],
    )
