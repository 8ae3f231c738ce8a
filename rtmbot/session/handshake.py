"""RTM 握手模块。

用 API token 换取 websocket 地址和机器人身份：

    POST rtm.start (form: token, simple_latest, no_unreads)
        ↓
    {"ok": true, "url": "wss://...", "team": {"name": ...},
     "self": {"name": ..., "id": ...}}
        ↓
    SessionInfo（握手后不可变）

任何失败都会抛出 HandshakeError，进程无法继续运行。
"""

import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import httpx
from loguru import logger

from rtmbot.config.schema import Config
from rtmbot.errors import HandshakeError

MENTION_PREFIX = r"^<@{}>:?\s?"


def compile_mention_prefix(self_id: str) -> re.Pattern[str]:
    """编译 @机器人 前缀的正则：以 <@ID> 开头，可选冒号和一个空白。"""
    return re.compile(MENTION_PREFIX.format(re.escape(self_id)))


@dataclass(frozen=True)
class SessionInfo:
    """已连接机器人的身份。

    Attributes:
        url: websocket 地址
        team_name: 团队名称
        self_name: 机器人名称
        self_id: 机器人用户 ID
        mention_prefix: 由 self_id 编译的 @ 前缀正则
    """

    url: str
    team_name: str
    self_name: str
    self_id: str
    mention_prefix: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mention_prefix", compile_mention_prefix(self.self_id))

    def is_directed(self, text: str) -> bool:
        """消息是否以 @机器人 开头。"""
        return self.mention_prefix.match(text) is not None

    def strip_mention(self, text: str) -> str | None:
        """去掉 @机器人 前缀。

        Returns:
            去掉前缀后的文本；消息不是发给机器人的则返回 None
        """
        if not self.is_directed(text):
            return None
        return self.mention_prefix.sub("", text, count=1)

    def __str__(self) -> str:
        return f"Session{{team: {self.team_name}, name: {self.self_name}, id: {self.self_id}}}"


def _require(body: dict[str, Any], path: str) -> str:
    node: Any = body
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            raise HandshakeError(f"Missing {path!r} in RTM start response")
        node = node[part]
    if not isinstance(node, str) or not node:
        raise HandshakeError(f"Invalid {path!r} in RTM start response: {node!r}")
    return node


def parse_rtm_start(body: Any) -> SessionInfo:
    """解析握手响应。

    Args:
        body: 已解码的 JSON 响应

    Returns:
        SessionInfo

    Raises:
        HandshakeError: ok 不为 true、字段缺失或 URL 无效
    """
    if not isinstance(body, dict):
        raise HandshakeError(f"Unexpected RTM start response: {body!r}")
    if body.get("ok") is not True:
        raise HandshakeError(f"Bad response from RTM start call: {body}")

    url = _require(body, "url")
    parsed = urlparse(url)
    if parsed.scheme not in ("ws", "wss") or not parsed.netloc:
        raise HandshakeError(f"Unable to parse websocket endpoint URI: {url!r}")

    return SessionInfo(
        url=url,
        team_name=_require(body, "team.name"),
        self_name=_require(body, "self.name"),
        self_id=_require(body, "self.id"),
    )


async def rtm_start(config: Config, client: httpx.AsyncClient | None = None) -> SessionInfo:
    """调用 RTM start 接口完成握手。

    Args:
        config: 根配置（需要 api_token 与 slack 段）
        client: 可选的 httpx 客户端（测试时注入）

    Returns:
        SessionInfo

    Raises:
        ConfigError: 未配置 token
        HandshakeError: 传输、状态码、JSON 解析或响应内容错误
    """
    token = config.require_token()
    slack = config.slack
    logger.info("Calling Slack RTM start")

    form = {
        "token": token,
        "simple_latest": str(slack.simple_latest).lower(),
        "no_unreads": str(slack.no_unreads).lower(),
    }

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=slack.http_timeout) as owned:
                r = await owned.post(slack.rtm_start_url, data=form)
        else:
            r = await client.post(slack.rtm_start_url, data=form)
        r.raise_for_status()
        body = r.json()
    except httpx.HTTPError as e:
        raise HandshakeError(f"Unable to connect to RTM service: {e}") from e
    except ValueError as e:
        raise HandshakeError(f"Unable to parse response body: {e}") from e

    session = parse_rtm_start(body)
    logger.debug(f"RTM start succeeded: {session}")
    return session
