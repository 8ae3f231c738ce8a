"""配置模块。"""

from rtmbot.config.schema import Config

__all__ = ["Config"]
