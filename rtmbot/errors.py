"""异常类型定义。

错误分类：
- 启动致命错误：ConfigError, HandshakeError（进程直接退出，不重试）
- 帮助文本解析错误：HelpParseError（仅记录日志）
- tmux 执行协议错误：TmuxCommandError, TmuxFramingError（返回给调用方）
"""


class RTMBotError(Exception):
    """rtmbot 所有异常的基类。"""


class ConfigError(RTMBotError):
    """配置缺失或无效（例如未设置 API token）。"""


class HandshakeError(RTMBotError):
    """RTM 握手失败：传输错误、响应 ok=false、字段缺失或 URL 无效。"""


class HelpParseError(RTMBotError):
    """命令帮助文本无法解析出名称或简短描述。"""


class TmuxError(RTMBotError):
    """tmux 执行协议错误基类。"""


class TmuxCommandError(TmuxError):
    """tmux 子进程启动失败或以非零状态退出。"""

    def __init__(self, args: list[str], returncode: int | None, stderr: str = ""):
        self.command_args = args
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(
            f"Error running command: tmux {' '.join(args)} (exit {returncode}){detail}"
        )


class TmuxFramingError(TmuxError):
    """在捕获的缓冲区中找不到分隔标记。"""
