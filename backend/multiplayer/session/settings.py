"""Session engine configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class SessionSettings(BaseSettings):
    model_config = {"env_prefix": "LUSCID_"}

    code_max_attempts: int = Field(default=5, ge=1)
    store_retry_attempts: int = Field(default=3, ge=1)
    # doubled after every failed attempt
    store_retry_backoff_seconds: float = Field(default=0.2, ge=0)
    # cap for the backoff between attempts of an overdue timed transition
    timed_retry_max_backoff_seconds: float = Field(default=5, ge=0)
    max_conflict_retries: int = Field(default=5, ge=1)
    bot_think_seconds: float = Field(default=1.5, ge=0)
    bot_flip_interval_seconds: float = Field(default=0.8, ge=0)
    room_ttl_seconds: int = Field(default=3600, ge=1)
    sweep_interval_seconds: float = Field(default=30, gt=0)
    log_dir: str | None = None
