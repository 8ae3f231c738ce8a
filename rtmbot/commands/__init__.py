"""机器人命令模块。

提供命令相关组件：
- Command: 命令抽象基类
- RegexCommand: 基于正则触发的命令基类
- CommandRegistry: 命令注册中心（匹配与帮助）

内置命令：PingCommand, AddCommand, ConsoleCommand
"""

from rtmbot.commands.base import Command, RegexCommand
from rtmbot.commands.builtin import AddCommand, ConsoleCommand, PingCommand, default_commands
from rtmbot.commands.help import HelpEntry, parse_help
from rtmbot.commands.registry import CommandRegistry

__all__ = [
    "Command",
    "RegexCommand",
    "CommandRegistry",
    "HelpEntry",
    "parse_help",
    "PingCommand",
    "AddCommand",
    "ConsoleCommand",
    "default_commands",
]
