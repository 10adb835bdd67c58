"""lxl - Lite XL 插件包管理器"""

__version__ = "0.4.0"
