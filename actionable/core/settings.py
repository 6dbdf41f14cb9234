"""
集中配置（环境变量 / .env，前缀 ACT_）。
引擎依赖的阈值（超时、轮询间隔、导航判定）都在这里，便于按驱动调整。
"""
# @file purpose: Centralized settings using Pydantic Settings.

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ACT_", env_file=".env", extra="ignore")

    headless: bool = True
    default_timeout_ms: float = 30_000
    navigation_timeout_ms: float | None = None
    # backoff between actionability ticks; the last value repeats
    poll_intervals_ms: list[float] = [0, 20, 100, 100, 500]
    navigation_actions: list[str] = [
        "click",
        "dblclick",
        "tap",
        "check",
        "uncheck",
        "set_checked",
        "press",
        "press_sequentially",
        "select_option",
        "set_input_files",
        "drag_to",
    ]
    # how long a navigation-capable action waits for a navigation it caused to show up
    navigation_grace_ms: float = 50
    # expect(locator) 的默认超时
    expect_timeout_ms: float = 5_000
    log_level: str = "INFO"


settings = Settings()
