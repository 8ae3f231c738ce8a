"""命令注册中心模块。

提供命令管理功能：
- 注册命令（保持注册顺序，不去重）
- 按注册顺序匹配消息文本（先注册者优先）
- 解析并缓存帮助文本
- help 请求的应答

帮助索引以解析出的名称为键（区分大小写）。
帮助文本无法解析的命令不会出现在帮助中，但仍参与正常匹配。
"""

from typing import Iterator

from loguru import logger

from rtmbot.commands.base import Command
from rtmbot.commands.help import (
    HelpEntry,
    parse_help,
    render_help_entry,
    render_help_list,
    render_unknown,
    requested_topic,
)
from rtmbot.errors import HelpParseError


class CommandRegistry:
    """命令注册中心。"""

    def __init__(self, commands: list[Command] | None = None):
        self._commands: list[Command] = list(commands or [])
        self._helps: dict[str, HelpEntry] = {}

    def register(self, command: Command) -> None:
        """注册命令（追加到末尾）。

        Args:
            command: 命令实例，必须继承 Command 基类
        """
        self._commands.append(command)
        logger.debug(f"Registered command {command!r}")

    def match(self, text: str) -> Command | None:
        """查找第一个匹配的命令。

        matches() 抛出异常的命令视为不匹配。

        Args:
            text: 去掉 @ 前缀后的消息文本

        Returns:
            第一个匹配的命令，没有则返回 None
        """
        for cmd in self._commands:
            try:
                if cmd.matches(text):
                    return cmd
            except Exception as e:
                logger.error(f"Error matching {cmd!r} against {text!r}: {e}")
        return None

    def build_help_index(self) -> dict[str, HelpEntry]:
        """解析所有命令的帮助文本并缓存。

        Returns:
            名称 -> HelpEntry 的映射（按注册顺序）
        """
        helps: dict[str, HelpEntry] = {}
        for cmd in self._commands:
            try:
                entry = parse_help(cmd.help())
            except HelpParseError as e:
                logger.warning(f"{e} ({cmd!r})")
                continue
            if entry.name in helps:
                logger.warning(f"Duplicate help entry for {entry.name}, replacing")
            helps[entry.name] = entry
        self._helps = helps
        return helps

    def get_help(self, name: str) -> HelpEntry | None:
        return self._helps.get(name)

    def help_reply(self, text: str) -> str | None:
        """help 请求的应答文本。

        Args:
            text: 去掉 @ 前缀后的消息文本

        Returns:
            None 表示不是 help 请求；否则为要回复的文本
        """
        topic = requested_topic(text)
        if topic is None:
            return None
        if not topic:
            return render_help_list(self._helps.values())

        entry = self._helps.get(topic)
        if entry is None:
            return render_unknown(topic)
        return render_help_entry(entry)

    @property
    def commands(self) -> list[Command]:
        """已注册命令列表（副本）。"""
        return list(self._commands)

    @property
    def helps(self) -> dict[str, HelpEntry]:
        return dict(self._helps)

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, command: Command) -> bool:
        return command in self._commands
