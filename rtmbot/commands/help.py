"""帮助文本解析与渲染。

每个命令的 help() 在启动时解析一次，缓存为 HelpEntry：
- name: 第一个 *加粗* 的名称
- short: 第一个句末符号（. ? !）之前的简短描述
- long: 其余的详细说明

help 触发规则：
- "help"          -> 列出所有命令
- "help <name>"   -> 显示指定命令的详细帮助
"""

import re
from dataclasses import dataclass
from typing import Iterable

from rtmbot.errors import HelpParseError

HELP_TRIGGER = re.compile(r"(?i)^help(?:\s(?P<cmd_name>.*))?$")
HELP_PARSER = re.compile(
    r"^\*(?P<name>\w+)\*:\s+(?P<short>.*?)(?:[.?!]\s?)(?P<long>.*)?$",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)
TERMINATORS = (".", "?", "!")

HELP_LIST_HEADER = "_List Of Commands_"
HELP_SELF_ENTRY = "*help*: Displays this help message."


@dataclass(frozen=True)
class HelpEntry:
    """解析后的命令帮助。"""

    name: str
    short: str
    long: str = ""


def parse_help(text: str) -> HelpEntry:
    """解析帮助文本。

    文本不以句末符号结尾时补一个 "."，该补充的句点不会出现在 long 中。

    Args:
        text: 命令 help() 返回的字符串

    Returns:
        HelpEntry

    Raises:
        HelpParseError: 无法解析出 name 或 short
    """
    appended = not text.rstrip().endswith(TERMINATORS)
    source = text + "." if appended else text

    m = HELP_PARSER.search(source)
    if m is None:
        raise HelpParseError(f"Unable to parse name from help text: {text}")

    name = (m.group("name") or "").strip()
    short = (m.group("short") or "").strip()
    long = (m.group("long") or "").strip()
    if appended and long.endswith("."):
        long = long[:-1].rstrip()

    if not name:
        raise HelpParseError(f"Unable to parse name from help text: {text}")
    if not short:
        raise HelpParseError(f"Unable to parse short description from help text: {text}")
    return HelpEntry(name=name, short=short, long=long)


def requested_topic(text: str) -> str | None:
    """判断是否为 help 请求。

    Returns:
        None 表示不是 help 请求；"" 表示不带参数的 help；否则为请求的命令名
    """
    m = HELP_TRIGGER.match(text)
    if m is None:
        return None
    return (m.group("cmd_name") or "").strip()


def render_help_list(entries: Iterable[HelpEntry]) -> str:
    lines = [HELP_LIST_HEADER, HELP_SELF_ENTRY]
    lines.extend(f"*{h.name}*: {h.short}" for h in entries)
    return "\n".join(lines).strip()


def render_help_entry(entry: HelpEntry) -> str:
    return f"_{entry.name.upper()}_\n\n{entry.short}\n{entry.long}".strip()


def render_unknown(name: str) -> str:
    return f"Sorry, there's no command called {name}."
