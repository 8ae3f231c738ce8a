"""消息总线事件类型定义。

定义了在消息总线中流通的事件数据结构：
- InboundEvent: 从 RTM websocket 接收的一帧事件
- OutboundMessage: 发送给聊天服务的消息（带递增 id）
- CommandInvocation: 已匹配、等待执行的命令调用
"""

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rtmbot.commands.base import Command


@dataclass
class InboundEvent:
    """入站事件：从 websocket 接收到的一个 JSON 文档。

    只有 type、text、channel 三个字段会被调度器使用，
    其余平台相关字段保留在 raw 中，通过 get() 按路径访问。

    Attributes:
        type: 事件类型（message, hello, presence_change 等）
        text: 消息文本（非消息事件通常为 None）
        channel: 来源频道 ID
        raw: 原始 JSON 文档
    """

    type: str | None = None
    text: str | None = None
    channel: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, frame: str | bytes) -> "InboundEvent":
        """从文本帧解析入站事件。

        Args:
            frame: websocket 文本帧内容

        Returns:
            解析后的 InboundEvent

        Raises:
            ValueError: JSON 格式错误或文档不是对象
        """
        data = json.loads(frame)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InboundEvent":
        def _str(key: str) -> str | None:
            value = data.get(key)
            return value if isinstance(value, str) else None

        return cls(type=_str("type"), text=_str("text"), channel=_str("channel"), raw=data)

    @property
    def is_message(self) -> bool:
        """是否为带文本的 message 事件。"""
        return self.type == "message" and self.text is not None

    def get(self, path: str, default: Any = None) -> Any:
        """按点分路径读取原始文档中的字段。

        例如 event.get("user.profile.name")。

        Args:
            path: 点分隔的字段路径
            default: 路径不存在时的返回值

        Returns:
            字段值或 default
        """
        node: Any = self.raw
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node


@dataclass(frozen=True)
class OutboundMessage:
    """出站消息：发送给聊天服务的消息。

    id 由 MessageSequencer 在构造时分配，之后不可修改。
    聊天服务依靠递增的 id 来保证显示顺序，因此不要直接构造本类，
    应通过 MessageSequencer.new_message() 或 MessageBus.send() 获取。

    Attributes:
        id: 单调递增的消息 ID
        channel: 目标频道 ID
        text: 消息文本内容
    """

    id: int
    channel: str
    text: str

    def to_wire(self) -> dict[str, Any]:
        """转换为 RTM 协议格式（附带 type=message）。"""
        return {
            "id": self.id,
            "type": "message",
            "channel": self.channel,
            "text": self.text,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_wire())


@dataclass
class CommandInvocation:
    """命令调用请求：调度器匹配到命令后放入命令队列，由独立任务执行。

    Attributes:
        command: 匹配到的命令
        channel: 触发消息所在频道
        text: 去掉 @ 前缀后的消息文本
    """

    command: "Command"
    channel: str
    text: str
