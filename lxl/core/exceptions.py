"""统一异常体系

所有业务异常继承 LxlError，由下层抛出、逐层向上传递。
只有 CLI 层负责打印错误并决定进程退出码，内部各层不直接终止进程。
"""

from __future__ import annotations


class LxlError(Exception):
    """包管理器基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(LxlError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(LxlError):
    """输入数据校验失败（URL 协议、ref 字符等）"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


# =========================================================================
# 远程清单
# =========================================================================


class TransportError(LxlError):
    """远程不可达或返回非 2xx 状态"""

    code = "TRANSPORT_ERROR"

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ManifestParseError(LxlError):
    """清单 JSON 格式错误"""

    code = "MANIFEST_PARSE_ERROR"


class NoValidRemoteError(LxlError):
    """所有订阅源均不可用"""

    code = "NO_VALID_REMOTE"


class RemoteError(LxlError):
    """订阅源增删失败（重复、不存在、ref 不支持）"""

    code = "REMOTE_ERROR"


# =========================================================================
# 解析与安装
# =========================================================================


class PlatformError(LxlError):
    """插件或必需文件不支持当前操作系统"""

    code = "UNSUPPORTED_PLATFORM"


class ResolutionError(LxlError):
    """插件定位或依赖解析失败"""

    code = "RESOLUTION_ERROR"


class AddonNotFoundError(ResolutionError):
    code = "ADDON_NOT_FOUND"


class AddonNotInstalledError(ResolutionError):
    code = "ADDON_NOT_INSTALLED"


class AlreadyInstalledError(ResolutionError):
    code = "ALREADY_INSTALLED"


class EndpointError(ResolutionError):
    """无法确定插件的下载端点"""

    code = "NO_VALID_ENDPOINT"


class MalformedLinkError(ResolutionError):
    """仓库链接格式不合法"""

    code = "MALFORMED_LINK"


class DependencyError(ResolutionError):
    """必需依赖安装失败"""

    code = "DEPENDENCY_ERROR"

    def __init__(self, message: str, dependency: str = "") -> None:
        super().__init__(message)
        self.dependency = dependency


class DependencyCycleError(ResolutionError):
    """依赖链（或端点链）出现环"""

    code = "DEPENDENCY_CYCLE"

    def __init__(self, chain: list[str]) -> None:
        super().__init__(f"检测到循环依赖: {' -> '.join(chain)}")
        self.chain = chain


class ConcurrentInstallError(ResolutionError):
    """等待同名插件的并发安装超时"""

    code = "CONCURRENT_INSTALL"


class InstallError(LxlError):
    """文件系统操作失败"""

    code = "INSTALL_ERROR"


class ExecutionError(LxlError):
    """外部命令（git / 安装后命令）执行失败"""

    code = "EXECUTION_ERROR"


class BatchInstallError(LxlError):
    """stub 清单批量安装失败，已回滚本批次"""

    code = "BATCH_INSTALL_ERROR"

    def __init__(self, failures: dict[str, str]) -> None:
        detail = "; ".join(f"{k}: {v}" for k, v in failures.items())
        super().__init__(f"批量安装失败 ({len(failures)} 个): {detail}")
        self.failures = failures
