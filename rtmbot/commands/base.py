"""命令基类模块。

定义机器人命令的抽象基类，所有具体命令必须继承此类：

核心方法（子类必须实现）：
- help(): 帮助文本（用于 help 列表和详细帮助）
- matches(): 判断消息文本是否触发该命令
- run(): 执行命令逻辑（异步）

帮助文本格式：

    *name*: A short description. Longer description, including argument details.

- name 部分会被解析出来并在列表中加粗显示
- 第一句作为简短描述，不应包含换行
- 剩余部分作为详细帮助，可以包含换行和任意格式

matches() 收到的文本已经去掉了 @机器人 前缀，命令不需要自行检查。
"""

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rtmbot.bus.queue import MessageBus


class Command(ABC):
    """命令抽象基类。

    使用示例：
        class PingCommand(Command):
            def help(self) -> str:
                return "*ping*: A simple response command to test connectivity"

            def matches(self, text: str) -> bool:
                return text == "ping"

            async def run(self, channel: str, text: str, out: MessageBus) -> None:
                await out.send(channel, "Pong!")
    """

    @abstractmethod
    def help(self) -> str:
        """帮助文本，格式见模块说明。"""
        pass

    @abstractmethod
    def matches(self, text: str) -> bool:
        """判断消息文本是否触发本命令。

        Args:
            text: 去掉 @ 前缀后的消息文本

        Returns:
            True 表示由本命令处理
        """
        pass

    @abstractmethod
    async def run(self, channel: str, text: str, out: "MessageBus") -> None:
        """执行命令逻辑。

        失败时直接抛出异常，调度器会记录日志，不会重试，也不会通知用户。

        Args:
            channel: 触发消息所在频道
            text: 去掉 @ 前缀后的消息文本
            out: 输出端，调用 await out.send(channel, text) 发送回复
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RegexCommand(Command):
    """基于正则表达式触发的命令。

    子类设置 pattern 类属性（字符串或已编译的正则），
    matches() 使用 search 判断，match_groups() 返回命名分组。
    """

    pattern: str | re.Pattern[str] = ""

    def __init__(self) -> None:
        self._regex = re.compile(self.pattern) if isinstance(self.pattern, str) else self.pattern

    def matches(self, text: str) -> bool:
        return self._regex.search(text) is not None

    def match_groups(self, text: str) -> dict[str, Any]:
        """返回第一处匹配的命名分组，未匹配时返回空字典。"""
        m = self._regex.search(text)
        return m.groupdict() if m else {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(trigger={self._regex.pattern!r})"
