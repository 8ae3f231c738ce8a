"""内置命令。

- PingCommand: 连通性测试
- AddCommand: 两数相加
- ConsoleCommand: 通过 tmux 执行协议向控制台发送一行输入
"""

from typing import TYPE_CHECKING

from rtmbot.commands.base import Command, RegexCommand
from rtmbot.tmux.exec import TmuxExecutor

if TYPE_CHECKING:
    from rtmbot.bus.queue import MessageBus
    from rtmbot.config.schema import Config


class PingCommand(Command):
    """ping -> Pong!"""

    def help(self) -> str:
        return "*ping*: A simple response command to test connectivity"

    def matches(self, text: str) -> bool:
        return text.strip() == "ping"

    async def run(self, channel: str, text: str, out: "MessageBus") -> None:
        await out.send(channel, "Pong!")


class AddCommand(RegexCommand):
    """add <a> <b>"""

    pattern = r"^add (?P<a>-?\d+) (?P<b>-?\d+)$"

    def help(self) -> str:
        return (
            "*add*: Add two numbers together.\n"
            "Add takes two integers and adds them together.\n"
            "ex: @bot: add 1 2"
        )

    async def run(self, channel: str, text: str, out: "MessageBus") -> None:
        groups = self.match_groups(text)
        a, b = int(groups["a"]), int(groups["b"])
        await out.send(channel, f"{a} + {b} = {a + b}")


class ConsoleCommand(RegexCommand):
    """把一行输入发送到 tmux 控制台并回复其输出。"""

    pattern = r"^(?:console|mc)\s+(?P<keys>.+)$"

    def __init__(self, executor: TmuxExecutor):
        super().__init__()
        self.executor = executor

    def help(self) -> str:
        return (
            "*console*: Run a line in the server console and show its output.\n"
            f"The line is typed into the `{self.executor.server_name}` tmux server "
            "and the output it produces is sent back. `mc` works as a shorthand.\n"
            "ex: @bot: console list"
        )

    async def run(self, channel: str, text: str, out: "MessageBus") -> None:
        keys = self.match_groups(text)["keys"].strip()
        output = await self.executor.send_keys_and_capture(keys)
        output = output.strip()
        await out.send(channel, f"```{output}```" if output else "(no output)")


def default_commands(config: "Config") -> list[Command]:
    """根据配置构建默认命令列表。"""
    commands: list[Command] = [PingCommand(), AddCommand()]
    if config.tmux.enabled:
        executor = TmuxExecutor(server_name=config.tmux.server_name, binary=config.tmux.binary)
        commands.append(ConsoleCommand(executor))
    return commands
