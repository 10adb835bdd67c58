"""集中配置管理

替代各模块散落的常量，提供统一的配置入口。
支持从 YAML 文件加载 + 环境变量覆盖 + 编程式覆盖。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from lxl.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

OFFICIAL_PREFIX = "https://raw.githubusercontent.com/lite-xl/"

_MANIFEST_SUFFIX = "/master/manifest.json"


def _default_remotes() -> list[str]:
    return [
        f"{OFFICIAL_PREFIX}{name}{_MANIFEST_SUFFIX}"
        for name in ("lite-xl-plugins", "lite-xl-lsp-servers", "lite-xl-ide")
    ]


@dataclass
class Config:
    """包管理器全局配置"""

    # 目录
    config_root: str = "~/.config/lite-xl"
    status_file: str = "lxl/status.yml"  # 相对 config_root

    # 安装
    script_ext: str = ".lua"
    lock_timeout: int = 600  # 秒，等待同名插件并发安装

    # 网络
    http_timeout: int = 30
    max_workers: int = 8

    # 订阅源
    official_prefix: str = OFFICIAL_PREFIX
    default_remotes: list[str] = field(default_factory=_default_remotes)

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @property
    def root(self) -> Path:
        return Path(os.path.expanduser(self.config_root))

    @property
    def status_path(self) -> Path:
        return self.root / self.status_file

    @classmethod
    def from_file(cls, path: str = "") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认；LXL_CONFIG_ROOT 优先"""
        data = load_yaml(path) if path else {}
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        env_root = os.getenv("LXL_CONFIG_ROOT", "")
        if env_root:
            cfg.config_root = env_root
        return cfg

    def to_dict(self) -> dict:
        from dataclasses import asdict
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config.from_file()
    return _current


def init_config(path: str = "") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    if path:
        logger.info("配置已加载: %s", path)
    return _current
