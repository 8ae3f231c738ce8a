"""RTM websocket 连接。

提供调度器使用的三个原语：
- read_frame(): 阻塞读取下一帧
- write_frame(): 写出一帧（写锁保护，底层连接不支持并发写）
- close(): 尽力发送正常关闭帧，不会无限阻塞
"""

import asyncio

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK


class RTMConnection:
    """websocket 连接封装。

    写锁（写入互斥令牌）由连接自身持有，所有写操作（包括关闭帧）都需先获取。
    """

    def __init__(self, ws, url: str = ""):
        self._ws = ws
        self.url = url
        self._write_lock = asyncio.Lock()

    @classmethod
    async def open(cls, url: str) -> "RTMConnection":
        """连接 websocket 地址。"""
        logger.info(f"Dialing Slack at {url}")
        ws = await websockets.connect(url)
        return cls(ws, url)

    async def read_frame(self) -> str | bytes | None:
        """读取下一帧。

        Returns:
            文本帧为 str，二进制帧为 bytes；对端正常关闭时返回 None

        Raises:
            websockets.exceptions.ConnectionClosedError: 连接异常断开
        """
        try:
            return await self._ws.recv()
        except ConnectionClosedOK:
            return None

    async def write_frame(self, data: str) -> None:
        """写出一个文本帧。"""
        async with self._write_lock:
            await self._ws.send(data)

    async def close(self, timeout: float = 1.0) -> None:
        """发送正常关闭帧（code 1000）。

        失败或超时只记录日志。

        Args:
            timeout: 最长等待时间（秒）
        """
        async def _close() -> None:
            async with self._write_lock:
                await self._ws.close(code=1000)

        try:
            await asyncio.wait_for(_close(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out closing websocket after {timeout}s")
        except (ConnectionClosedError, OSError) as e:
            logger.warning(f"Error closing websocket: {e}")

    @property
    def write_lock(self) -> asyncio.Lock:
        return self._write_lock
