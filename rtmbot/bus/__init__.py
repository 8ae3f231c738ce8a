"""消息总线模块。

用于解耦 websocket 读取、命令调度与消息写出。
采用有界异步队列实现，读取任务将事件推入入站队列，命令处理后推送到出站队列。
"""

from rtmbot.bus.events import CommandInvocation, InboundEvent, OutboundMessage
from rtmbot.bus.queue import MessageBus
from rtmbot.bus.sequence import MessageSequencer

__all__ = [
    "MessageBus",
    "MessageSequencer",
    "InboundEvent",
    "OutboundMessage",
    "CommandInvocation",
]
