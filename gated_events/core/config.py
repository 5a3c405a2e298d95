"""配置"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """事件发射器配置"""

    model_config = SettingsConfigDict(
        env_prefix="GATED_EVENTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # 忽略 .env 中未声明的变量，避免 ValidationError
    )

    DEBUG: bool = False

    # 新建发射器默认是否检查监听器返回值（聚合 / 取消）
    CHECK_RETURN_VALUES: bool = False

    # resume_events() 未显式传 replay 时是否重放暂停期间排队的事件
    REPLAY_ON_RESUME: bool = False


settings = Settings()
