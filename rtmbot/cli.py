"""命令行入口。

加载配置、初始化日志、注册默认命令，然后运行机器人直到收到中断信号。
启动阶段的致命错误（缺少 token、握手失败、连接失败）记录日志后以状态 1 退出。
"""

import argparse
import asyncio
import signal
import sys

from loguru import logger
from websockets.exceptions import WebSocketException

from rtmbot import __version__
from rtmbot.bot.loop import Bot
from rtmbot.commands.builtin import default_commands
from rtmbot.config.schema import Config
from rtmbot.errors import RTMBotError
from rtmbot.utils.log import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rtmbot", description="RTM chat bot")
    parser.add_argument("--env-file", default=".env", help="dotenv file to load (default: .env)")
    parser.add_argument("--log-level", help="override RTMBOT_LOGGING__LEVEL")
    parser.add_argument("--log-file", help="override RTMBOT_LOGGING__FILE ('' disables)")
    parser.add_argument(
        "--no-console", action="store_true", help="do not register the tmux console command"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    config = Config(_env_file=args.env_file or None)
    if args.log_level:
        config.logging.level = args.log_level
    if args.log_file is not None:
        config.logging.file = args.log_file
    if args.no_console:
        config.tmux.enabled = False
    return config


async def serve(bot: Bot) -> None:
    """安装信号处理器并运行机器人。"""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, bot.stop)
        except NotImplementedError:
            # Windows 事件循环不支持，退回 KeyboardInterrupt
            pass
    await bot.start()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args)
    setup_logging(config.logging)

    bot = Bot(config, commands=default_commands(config))
    try:
        asyncio.run(serve(bot))
    except RTMBotError as e:
        logger.critical(str(e))
        return 1
    except (OSError, WebSocketException) as e:
        logger.critical(f"Unable to open websocket to Slack: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
