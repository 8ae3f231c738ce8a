"""tmux 集成模块。

- TmuxExecutor: 通过分隔标记把 tmux 会话当作同步命令通道使用
"""

from rtmbot.tmux.exec import TmuxExecutor, TmuxOperation, delimiters, parse_output, rand_hash

__all__ = ["TmuxExecutor", "TmuxOperation", "delimiters", "parse_output", "rand_hash"]
