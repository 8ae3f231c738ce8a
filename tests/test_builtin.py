"""Tests for the bundled commands and the command registry."""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from rtmbot.bus.queue import MessageBus
from rtmbot.commands.base import Command, RegexCommand
from rtmbot.commands.builtin import AddCommand, ConsoleCommand, PingCommand, default_commands
from rtmbot.commands.help import parse_help
from rtmbot.commands.registry import CommandRegistry
from rtmbot.config.schema import Config, TmuxConfig
from rtmbot.errors import TmuxFramingError
from rtmbot.tmux.exec import TmuxExecutor


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _Predicate(Command):
    def __init__(self, name: str, predicate):
        self.name = name
        self.predicate = predicate

    def help(self) -> str:
        return f"*{self.name}*: Test command"

    def matches(self, text: str) -> bool:
        return self.predicate(text)

    async def run(self, channel, text, out) -> None:
        await out.send(channel, self.name)


def _console(output: str = "", error: Exception | None = None) -> tuple[ConsoleCommand, MagicMock]:
    executor = MagicMock(spec=TmuxExecutor)
    executor.server_name = "minecraft"
    executor.send_keys_and_capture = AsyncMock(return_value=output, side_effect=error)
    return ConsoleCommand(executor), executor


async def _replies(bus: MessageBus) -> list[str]:
    texts = []
    while bus.outbound_size:
        texts.append((await bus.consume_outbound()).text)
    return texts


# ---------------------------------------------------------------------------
# CommandRegistry.match
# ---------------------------------------------------------------------------

def test_match_returns_first_registered_match():
    a = _Predicate("a", lambda t: t.startswith("x"))
    b = _Predicate("b", lambda t: t == "xy")
    assert CommandRegistry([a, b]).match("xy") is a
    assert CommandRegistry([b, a]).match("xy") is b


def test_match_returns_none_without_match():
    registry = CommandRegistry([_Predicate("a", lambda t: False)])
    assert registry.match("anything") is None


def test_match_skips_commands_that_raise():
    def _boom(text):
        raise ValueError("bad predicate")

    broken = _Predicate("broken", _boom)
    ok = _Predicate("ok", lambda t: True)
    assert CommandRegistry([broken, ok]).match("x") is ok


def test_register_appends_without_dedup():
    registry = CommandRegistry()
    ping = PingCommand()
    registry.register(ping)
    registry.register(ping)

    assert len(registry) == 2
    assert ping in registry
    assert list(registry) == [ping, ping]


# ---------------------------------------------------------------------------
# Bundled commands
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ping():
    bus = MessageBus()
    ping = PingCommand()

    assert ping.matches("ping")
    assert not ping.matches("pingu")
    await ping.run("C1", "ping", bus)

    assert await _replies(bus) == ["Pong!"]


@pytest.mark.asyncio
async def test_add():
    bus = MessageBus()
    add = AddCommand()

    assert add.matches("add 1 2")
    assert not add.matches("add one two")
    await add.run("C1", "add -3 10", bus)

    assert await _replies(bus) == ["-3 + 10 = 7"]


def test_bundled_help_texts_parse():
    console, _ = _console()
    for cmd in (PingCommand(), AddCommand(), console):
        entry = parse_help(cmd.help())
        assert entry.name
        assert entry.short


def test_regex_command_accepts_compiled_pattern():
    class _Shout(RegexCommand):
        pattern = re.compile(r"^shout (?P<word>\w+)$", re.IGNORECASE)

        def help(self) -> str:
            return "*shout*: Shout a word"

        async def run(self, channel, text, out) -> None:
            await out.send(channel, self.match_groups(text)["word"].upper())

    shout = _Shout()
    assert shout.matches("SHOUT hi")
    assert shout.match_groups("shout hi") == {"word": "hi"}
    assert shout.match_groups("whisper hi") == {}


@pytest.mark.asyncio
async def test_console_replies_with_output():
    bus = MessageBus()
    console, executor = _console(output="There are 0 players online\n")

    assert console.matches("console list")
    assert console.matches("mc list")
    await console.run("C1", "console list", bus)

    executor.send_keys_and_capture.assert_awaited_once_with("list")
    assert await _replies(bus) == ["```There are 0 players online```"]


@pytest.mark.asyncio
async def test_console_empty_output():
    bus = MessageBus()
    console, _ = _console(output="  \n")

    await console.run("C1", "mc save-all", bus)

    assert await _replies(bus) == ["(no output)"]


@pytest.mark.asyncio
async def test_console_errors_propagate():
    bus = MessageBus()
    console, _ = _console(error=TmuxFramingError("Unable to find end delimiter in tmux output"))

    with pytest.raises(TmuxFramingError):
        await console.run("C1", "console list", bus)
    assert bus.outbound_size == 0


def test_default_commands_respect_tmux_toggle():
    enabled = default_commands(Config(_env_file=None, tmux=TmuxConfig(enabled=True)))
    disabled = default_commands(Config(_env_file=None, tmux=TmuxConfig(enabled=False)))

    assert any(isinstance(c, ConsoleCommand) for c in enabled)
    assert not any(isinstance(c, ConsoleCommand) for c in disabled)
    assert [type(c) for c in disabled] == [PingCommand, AddCommand]
