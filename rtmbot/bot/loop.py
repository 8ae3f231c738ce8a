"""调度循环模块：核心事件处理引擎。

机器人的主循环，负责消息的完整生命周期：
1. 读取任务从 websocket 读取帧，解析后放入入站队列
2. 调度器等待事件源，每轮只处理一个就绪事件
3. 每个事件的处理都放到独立任务中，慢命令不会阻塞新消息的接收
4. 写入任务按顺序把出站消息写回 websocket

核心流程：
   websocket 帧 -> 入站队列 -> 处理器 -> (help 回复 | 命令队列 -> 命令任务) -> 出站队列 -> 写入任务

状态：IDLE -> RUNNING -> DRAINING -> STOPPED
"""

import asyncio
from enum import Enum
from typing import Any, Coroutine

from loguru import logger

from rtmbot.bus.events import CommandInvocation, InboundEvent
from rtmbot.bus.queue import MessageBus
from rtmbot.commands.base import Command
from rtmbot.commands.registry import CommandRegistry
from rtmbot.config.schema import Config
from rtmbot.session.connection import RTMConnection
from rtmbot.session.handshake import SessionInfo, rtm_start


class BotState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class Bot:
    """RTM 机器人：连接、调度与关闭。

    生命周期：
    1. 初始化：创建消息总线、命令注册中心
    2. start()：握手、建立 websocket、进入 run()
    3. run()：启动读取/写入任务，运行调度循环直到收到关闭信号
    4. 关闭：等待进行中的任务（最多 shutdown_grace 秒），发送 close 帧

    调度循环等待三个事件源：
    ```
    入站事件    -> 启动处理任务（help 或 命令匹配）
    命令调用    -> 启动命令任务（错误只记录日志）
    关闭信号    -> 进入 DRAINING
    ```
    出站消息由唯一的写入任务按入队顺序（即 id 顺序）写出。

    Attributes:
        config: 根配置
        bus: 消息总线（也是命令的输出端）
        commands: 命令注册中心
        session: 握手得到的机器人身份
        connection: websocket 连接
        state: 当前状态
    """

    def __init__(
        self,
        config: Config | None = None,
        commands: list[Command] | None = None,
        session: SessionInfo | None = None,
        connection: Any = None,
        bus: MessageBus | None = None,
    ):
        """初始化 Bot。

        Args:
            config: 根配置，默认从环境变量加载
            commands: 初始命令列表（按优先级排列）
            session: 已有的会话身份（跳过握手，测试使用）
            connection: 已建立的连接，需提供 read_frame/write_frame/close
            bus: 自定义消息总线
        """
        self.config = config or Config()
        self.bus = bus or MessageBus(
            inbound_size=self.config.bus.inbound_size,
            outbound_size=self.config.bus.outbound_size,
            command_size=self.config.bus.command_size,
        )
        self.commands = CommandRegistry(commands)
        self.session = session
        self.connection = connection
        self.state = BotState.IDLE

        self._shutdown = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()

    def register(self, command: Command) -> None:
        """注册命令。必须在 start()/run() 之前调用，帮助索引只在启动时构建一次。"""
        self.commands.register(command)

    def stop(self) -> None:
        """请求关闭（可重复调用，可在信号处理器中调用）。"""
        if not self._shutdown.is_set():
            logger.info("Shutdown requested")
        self._shutdown.set()

    async def start(self) -> None:
        """握手、建立连接并运行，直到关闭。

        Raises:
            ConfigError: 未配置 token
            HandshakeError: 握手失败
        """
        logger.info("Hello! Starting up...")

        if self.session is None:
            self.session = await rtm_start(self.config)
        if self.connection is None:
            self.connection = await RTMConnection.open(self.session.url)
        logger.info(f"Connected to {self.session.team_name} as {self.session.self_name}!")

        await self.run()

    async def run(self) -> None:
        """运行调度循环（需要已有 session 和 connection）。"""
        if self.state is not BotState.IDLE:
            raise RuntimeError(f"Bot cannot run from state {self.state.value}")
        if self.session is None or self.connection is None:
            raise RuntimeError("Bot has no session/connection, use start()")

        self.commands.build_help_index()
        self.state = BotState.RUNNING

        reader = asyncio.create_task(self._consume_frames())
        writer = asyncio.create_task(self._write_outgoing())
        try:
            await self._dispatch_loop()
        finally:
            await self._drain(reader, writer)

    async def _dispatch_loop(self) -> None:
        sources = {
            "shutdown": self._shutdown.wait,
            "inbound": self.bus.consume_inbound,
            "command": self.bus.consume_command,
        }
        waiters: dict[str, asyncio.Task] = {}

        try:
            while True:
                for name, factory in sources.items():
                    if name not in waiters:
                        waiters[name] = asyncio.create_task(factory())

                done, _ = await asyncio.wait(
                    waiters.values(), return_when=asyncio.FIRST_COMPLETED
                )

                # 每轮只处理一个事件，关闭信号优先；其余已完成的留到下一轮
                name = next(n for n in sources if waiters[n] in done)
                ready = waiters.pop(name)

                if name == "shutdown":
                    return
                if name == "inbound":
                    self._spawn(self._handle_inbound(ready.result()))
                else:
                    self._spawn(self._run_command(ready.result()))
        finally:
            for waiter in waiters.values():
                waiter.cancel()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Unhandled error in handler task: {task.exception()}")

    async def _consume_frames(self) -> None:
        """读取任务：读取帧并放入入站队列，连接断开时触发关闭。"""
        try:
            while True:
                frame = await self.connection.read_frame()
                if frame is None:
                    logger.info("Connection closed by remote")
                    return

                if not isinstance(frame, str):
                    logger.debug(f"Ignoring non-text frame ({len(frame)} bytes)")
                    continue
                logger.debug(f"Raw incoming message: {frame}")

                try:
                    event = InboundEvent.from_json(frame)
                except ValueError as e:
                    logger.error(f"Error parsing message: {e}")
                    continue

                await self.bus.publish_inbound(event)
        except Exception as e:
            logger.error(f"Error reading message: {e}")
        finally:
            self._shutdown.set()

    async def _handle_inbound(self, event: InboundEvent) -> None:
        """处理一条入站事件。

        处理流程：
        1. 非 message 事件、无文本或无频道：忽略
        2. 不以 @机器人 开头：忽略（不是发给机器人的）
        3. help 请求：直接回复
        4. 匹配命令：放入命令队列（不在这里执行）
        """
        if not event.is_message or not event.channel:
            return

        logger.debug(f"New message: {event.raw}")

        text = self.session.strip_mention(event.text)
        if text is None:
            return

        reply = self.commands.help_reply(text)
        if reply is not None:
            logger.debug(f"HELP triggered by {text!r}")
            await self.bus.send(event.channel, reply)
            return

        command = self.commands.match(text)
        if command is None:
            logger.debug(f"No command matches {text!r}")
            return

        logger.debug(f"{command!r} triggered by {text!r}")
        await self.bus.publish_command(CommandInvocation(command, event.channel, text))

    async def _run_command(self, invocation: CommandInvocation) -> None:
        command = invocation.command
        try:
            await command.run(invocation.channel, invocation.text, self.bus)
        except Exception as e:
            logger.error(f"Error running command {command!r}: {e}")

    async def _write_outgoing(self) -> None:
        """写入任务：唯一的出站消费者，按 id 顺序写出。"""
        while True:
            msg = await self.bus.consume_outbound()
            try:
                data = msg.to_json()
                logger.debug(f"Sending json: {data}")
                await self.connection.write_frame(data)
            except Exception as e:
                logger.error(f"Unable to send message {msg.id}: {e}")
            finally:
                self.bus.outbound.task_done()

    async def _drain(self, reader: asyncio.Task, writer: asyncio.Task) -> None:
        """关闭流程：等待进行中的任务与待写消息，取消剩余任务，发送 close 帧。"""
        self.state = BotState.DRAINING
        logger.info("Closing gracefully")

        loop = asyncio.get_running_loop()
        grace = self.config.runtime.shutdown_grace
        deadline = loop.time() + grace

        if self._tasks:
            _, pending = await asyncio.wait(set(self._tasks), timeout=grace)
            if pending:
                logger.warning(f"Cancelling {len(pending)} unfinished handler task(s)")
            for task in pending:
                task.cancel()

        try:
            await asyncio.wait_for(
                self.bus.outbound.join(), timeout=max(0.0, deadline - loop.time())
            )
        except asyncio.TimeoutError:
            if self.bus.outbound_size:
                logger.warning(f"Dropping {self.bus.outbound_size} unsent message(s)")

        leftover = [reader, writer, *self._tasks]
        for task in leftover:
            task.cancel()
        await asyncio.gather(*leftover, return_exceptions=True)

        await self.connection.close(timeout=self.config.runtime.close_timeout)
        self.state = BotState.STOPPED
        logger.info("Stopped")

    def __str__(self) -> str:
        if self.session is None:
            return "Bot{not connected}"
        return (
            f"Bot{{team: {self.session.team_name}, name: {self.session.self_name}, "
            f"id: {self.session.self_id}}}"
        )
