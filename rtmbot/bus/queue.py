"""异步消息队列模块。

提供读取任务、调度器与写入任务之间的解耦通信：
- 入站队列：读取任务推送事件到调度器
- 命令队列：入站处理器推送命令调用请求到调度器
- 出站队列：命令与帮助子系统推送回复到写入任务

所有队列都有容量上限，队列满时生产者阻塞（唯一的背压机制）。
"""

import asyncio

from loguru import logger

from rtmbot.bus.events import CommandInvocation, InboundEvent, OutboundMessage
from rtmbot.bus.sequence import MessageSequencer


class MessageBus:
    """异步消息总线。

    同时也是命令 run() 收到的输出端：命令通过 await out.send(channel, text)
    发送回复，id 分配与入队在同一把锁内完成，因此出站队列顺序与 id 顺序一致。

    Attributes:
        inbound: 入站事件队列（读取任务 -> 调度器）
        commands: 命令调用队列（入站处理器 -> 调度器）
        outbound: 出站消息队列（命令 -> 写入任务）
        sequencer: 出站消息 id 生成器
    """

    def __init__(
        self,
        inbound_size: int = 10,
        outbound_size: int = 10,
        command_size: int = 5,
        sequencer: MessageSequencer | None = None,
    ):
        self.inbound: asyncio.Queue[InboundEvent] = asyncio.Queue(maxsize=inbound_size)
        self.commands: asyncio.Queue[CommandInvocation] = asyncio.Queue(maxsize=command_size)
        self.outbound: asyncio.Queue[OutboundMessage] = asyncio.Queue(maxsize=outbound_size)
        self.sequencer = sequencer or MessageSequencer()
        # id 分配 + 入队 必须是一个整体
        self._send_lock = asyncio.Lock()

    async def publish_inbound(self, event: InboundEvent) -> None:
        """发布入站事件（队列满时阻塞）。"""
        await self.inbound.put(event)

    async def consume_inbound(self) -> InboundEvent:
        """消费下一个入站事件（阻塞直到可用）。"""
        return await self.inbound.get()

    async def publish_command(self, invocation: CommandInvocation) -> None:
        await self.commands.put(invocation)

    async def consume_command(self) -> CommandInvocation:
        return await self.commands.get()

    async def publish_outbound(self, msg: OutboundMessage) -> None:
        """发布已构造的出站消息。

        调用方需自行保证按 id 顺序发布；一般应使用 send()。

        Args:
            msg: 出站消息对象
        """
        await self.outbound.put(msg)

    async def consume_outbound(self) -> OutboundMessage:
        """消费下一个出站消息（阻塞直到可用）。"""
        return await self.outbound.get()

    async def send(self, channel: str, text: str) -> OutboundMessage:
        """分配 id 并将回复放入出站队列。

        Args:
            channel: 目标频道 ID
            text: 消息文本

        Returns:
            已入队的出站消息
        """
        async with self._send_lock:
            msg = self.sequencer.new_message(channel, text)
            logger.debug(f"New outgoing message: {msg.id} -> {channel}")
            await self.outbound.put(msg)
        return msg

    @property
    def inbound_size(self) -> int:
        """入站队列中待处理的事件数量。"""
        return self.inbound.qsize()

    @property
    def command_size(self) -> int:
        return self.commands.qsize()

    @property
    def outbound_size(self) -> int:
        """出站队列中待写出的消息数量。"""
        return self.outbound.qsize()
