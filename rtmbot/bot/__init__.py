"""机器人核心模块。

- Bot: 调度运行时（连接生命周期、事件调度、关闭）
- BotState: 运行状态
"""

from rtmbot.bot.loop import Bot, BotState

__all__ = ["Bot", "BotState"]
