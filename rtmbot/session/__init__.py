"""RTM 会话模块。

- rtm_start / SessionInfo: 握手与机器人身份
- RTMConnection: websocket 读写原语
"""

from rtmbot.session.connection import RTMConnection
from rtmbot.session.handshake import SessionInfo, parse_rtm_start, rtm_start

__all__ = ["RTMConnection", "SessionInfo", "parse_rtm_start", "rtm_start"]
