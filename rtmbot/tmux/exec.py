"""tmux 分隔符执行协议模块。

tmux 会话只提供原始的终端缓冲区，没有请求/响应的分帧。
为了拿到某一行输入对应的输出，每次操作：

1. 生成随机 hash（32 字节随机数 -> md5 十六进制）
2. 构造分隔标记：
   - begin = "### <hash> ###"
   - end   = "###/ <hash> ###"
3. 依次执行：
   send-keys begin -> send-keys -l 命令 -> send-keys end -> capture-pane -> show-buffer
4. 在 show-buffer 的输出中截取 begin 与 end 之间的内容，
   跳过前三行（begin 所在行剩余部分、begin 的回显/响应、命令回显行）

所有操作由执行器持有的锁串行化，同一时刻只有一个操作在进行。
没有超时：外部进程挂起会阻塞后续所有操作。
"""

import asyncio
import hashlib
import secrets
from dataclasses import dataclass, field

from loguru import logger

from rtmbot.errors import TmuxCommandError, TmuxFramingError

DEFAULT_SERVER_NAME = "minecraft"
PROMPT_CHARS = " \t>"


def rand_hash() -> str:
    """生成操作唯一的 hash。"""
    return hashlib.md5(secrets.token_bytes(32)).hexdigest()


def delimiters(op_hash: str) -> tuple[str, str]:
    """返回 (begin, end) 分隔标记。"""
    return f"### {op_hash} ###", f"###/ {op_hash} ###"


@dataclass
class TmuxOperation:
    """一次执行操作。

    Attributes:
        hash: 操作唯一 hash
        begin: 起始标记
        end: 结束标记
        commands: tmux 参数列表（按顺序执行，只捕获最后一个的 stdout）
    """

    hash: str
    begin: str
    end: str
    commands: list[list[str]] = field(default_factory=list)


def parse_output(output: str, op_hash: str) -> str:
    """从捕获的缓冲区中截取命令输出。

    Args:
        output: show-buffer 的输出
        op_hash: 本次操作的 hash

    Returns:
        end 标记之前的命令输出（end 标记前的提示符除外）

    Raises:
        TmuxFramingError: 找不到分隔标记或区域行数不足
    """
    begin, end = delimiters(op_hash)

    start = output.find(begin)
    if start == -1:
        raise TmuxFramingError("Unable to find start delimiter in tmux output")
    start += len(begin)

    stop = output.find(end, start)
    if stop == -1:
        raise TmuxFramingError("Unable to find end delimiter in tmux output")

    parts = output[start:stop].split("\n", 3)
    if len(parts) < 4:
        raise TmuxFramingError("Delimited region in tmux output is too short")

    # end 标记前只剩提示符（空白或 ">"）时丢弃该行，否则保留
    body = parts[3]
    head, _, tail = body.rpartition("\n")
    if not tail.strip(PROMPT_CHARS):
        return head
    return body


class TmuxExecutor:
    """在命名 tmux 服务器中同步执行一行输入。

    使用示例：
        tmux = TmuxExecutor(server_name="minecraft")
        output = await tmux.send_keys_and_capture("list")

    输入以字面文本发送（send-keys -l），不会被解释为 tmux 按键名；
    末尾的 "\r" 相当于回车。
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME, binary: str = "tmux"):
        """初始化执行器。

        Args:
            server_name: tmux 服务器名（-L 参数）
            binary: tmux 可执行文件
        """
        self.server_name = server_name
        self.binary = binary
        self._lock = asyncio.Lock()

    def prepare(self, keys: str) -> TmuxOperation:
        """为一行输入构造操作。

        Args:
            keys: 要发送到会话中的文本

        Returns:
            TmuxOperation
        """
        op_hash = rand_hash()
        begin, end = delimiters(op_hash)
        base = ["-L", self.server_name]
        return TmuxOperation(
            hash=op_hash,
            begin=begin,
            end=end,
            commands=[
                [*base, "send-keys", begin, "Enter"],
                [*base, "send-keys", "-l", f"{keys}\r"],
                [*base, "send-keys", end, "Enter"],
                [*base, "capture-pane"],
                [*base, "show-buffer"],
            ],
        )

    async def send_keys_and_capture(self, keys: str) -> str:
        """发送一行输入并返回它产生的输出。

        Args:
            keys: 要执行的输入

        Returns:
            命令输出

        Raises:
            TmuxCommandError: 任一步骤失败（整个操作中止，不返回部分结果）
            TmuxFramingError: 缓冲区中找不到分隔标记
        """
        async with self._lock:
            op = self.prepare(keys)
            logger.debug(f"tmux operation {op.hash}: {keys!r}")

            captured = ""
            last = len(op.commands) - 1
            for i, args in enumerate(op.commands):
                stdout = await self._run(args, capture=(i == last))
                if i == last:
                    captured = stdout

            return parse_output(captured, op.hash)

    async def _run(self, args: list[str], capture: bool) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE if capture else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TmuxCommandError(args, None, str(e)) from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise TmuxCommandError(
                args,
                process.returncode,
                stderr.decode("utf-8", errors="replace") if stderr else "",
            )

        return stdout.decode("utf-8", errors="replace") if stdout else ""
