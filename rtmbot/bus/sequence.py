"""出站消息序号生成器。

聊天服务按消息 id 决定显示顺序，因此每条出站消息都必须携带
严格递增的 id。计数器从 1 开始，在对象生命周期内不会重复。
"""

import threading

from rtmbot.bus.events import OutboundMessage


class MessageSequencer:
    """线程安全的递增 id 生成器。

    注意：id 只表达分配顺序，并不保证写出顺序；
    写出顺序由 MessageBus 的单一写入者保证。
    """

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        """原子地递增并返回下一个 id。"""
        with self._lock:
            self._last += 1
            return self._last

    def new_message(self, channel: str, text: str) -> OutboundMessage:
        """创建带有下一个 id 的出站消息。

        Args:
            channel: 目标频道 ID
            text: 消息文本

        Returns:
            新的 OutboundMessage
        """
        return OutboundMessage(id=self.next_id(), channel=channel, text=text)

    @property
    def last_id(self) -> int:
        return self._last
