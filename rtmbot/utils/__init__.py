"""工具函数模块。"""

from rtmbot.utils.log import setup_logging

__all__ = ["setup_logging"]
