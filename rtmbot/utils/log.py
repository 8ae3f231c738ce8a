"""日志配置。

使用 loguru 输出到两个目标：
- 标准输出：着色格式
- 日志文件：不着色，追加写入
"""

import sys

from loguru import logger

from rtmbot.config.schema import LoggingConfig

COLORED_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <cyan>{function}</cyan> "
    "<level>[{level: <4.4}]</level> {message}"
)
PLAIN_FORMAT = "{time:HH:mm:ss.SSS} {function} [{level: <4.4}] {message}"


def setup_logging(config: LoggingConfig | None = None) -> None:
    """移除默认输出，按配置添加终端与文件输出。

    Args:
        config: 日志配置，默认使用 LoggingConfig()
    """
    config = config or LoggingConfig()
    level = config.level.upper()

    logger.remove()
    logger.add(
        sys.stdout,
        level=level,
        format=COLORED_FORMAT if config.colorize else PLAIN_FORMAT,
        colorize=config.colorize,
    )
    if config.file:
        logger.add(config.file, level=level, format=PLAIN_FORMAT, colorize=False, mode="a")
