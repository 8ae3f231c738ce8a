"""配置模式模块。

使用 Pydantic 定义 rtmbot 的配置结构，支持：
- 类型验证
- 环境变量加载（以及 .env 文件）
- 默认值
- 嵌套配置

环境变量格式：
- 顶层: RTMBOT_KEY=value
- 嵌套: RTMBOT_SECTION__KEY=value
- API token 也可以直接使用 SLACK_API_TOKEN

示例：
    SLACK_API_TOKEN=xoxb-xxx
    RTMBOT_TMUX__SERVER_NAME=minecraft
    RTMBOT_LOGGING__LEVEL=INFO
"""

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rtmbot.errors import ConfigError

API_TOKEN_ENV_KEY = "SLACK_API_TOKEN"


class SlackConfig(BaseModel):
    """RTM 握手配置。

    Attributes:
        rtm_start_url: 握手接口地址
        simple_latest: 握手请求的 simple_latest 参数
        no_unreads: 握手请求的 no_unreads 参数
        http_timeout: 握手请求超时（秒）
    """
    rtm_start_url: str = "https://slack.com/api/rtm.start"
    simple_latest: bool = True
    no_unreads: bool = True
    http_timeout: float = 30.0


class BusConfig(BaseModel):
    """消息总线队列容量。队列满时生产者阻塞。"""
    inbound_size: int = 10
    outbound_size: int = 10
    command_size: int = 5


class RuntimeConfig(BaseModel):
    """调度器运行配置。

    Attributes:
        shutdown_grace: 关闭时等待进行中任务的时间（秒）
        close_timeout: 发送 close 帧的超时（秒）
    """
    shutdown_grace: float = 1.0
    close_timeout: float = 1.0


class TmuxConfig(BaseModel):
    """tmux 控制台命令配置。"""
    enabled: bool = True
    server_name: str = "minecraft"
    binary: str = "tmux"


class LoggingConfig(BaseModel):
    """日志配置。

    Attributes:
        level: 日志级别
        file: 日志文件路径（空字符串表示不写文件）
        colorize: 终端输出是否着色
    """
    level: str = "DEBUG"
    file: str = "rtmbot.log"
    colorize: bool = True


class Config(BaseSettings):
    """rtmbot 根配置。

    支持从环境变量加载配置，前缀为 RTMBOT_。
    嵌套配置使用 __ 分隔，如 RTMBOT_RUNTIME__SHUTDOWN_GRACE。
    """
    model_config = SettingsConfigDict(
        env_prefix="RTMBOT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_token: str = Field(
        default="",
        validation_alias=AliasChoices("api_token", API_TOKEN_ENV_KEY, "RTMBOT_API_TOKEN"),
    )
    slack: SlackConfig = Field(default_factory=SlackConfig)
    bus: BusConfig = Field(default_factory=BusConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    tmux: TmuxConfig = Field(default_factory=TmuxConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def token(self) -> str:
        """去除空白后的 API token。"""
        return self.api_token.strip()

    def require_token(self) -> str:
        """获取 API token，缺失时抛出 ConfigError。"""
        token = self.token
        if not token:
            raise ConfigError(f"Can't find slack token in env var {API_TOKEN_ENV_KEY}")
        return token
