"""rtmbot: 基于 RTM websocket 的聊天机器人。

- Bot: 调度运行时
- Command: 命令基类
- TmuxExecutor: tmux 分隔符执行协议
"""

__version__ = "0.1.0"

from rtmbot.bot.loop import Bot, BotState
from rtmbot.commands.base import Command, RegexCommand
from rtmbot.tmux.exec import TmuxExecutor

__all__ = ["Bot", "BotState", "Command", "RegexCommand", "TmuxExecutor", "__version__"]
