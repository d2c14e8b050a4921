from pydantic import Field
from pydantic_settings import BaseSettings

from app.core.enums import OverpaymentPolicy


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./ledger.db", alias="DATABASE_URL")

    remote_base_url: str = Field("http://localhost:54321", alias="REMOTE_BASE_URL")
    remote_api_key: str = Field("", alias="REMOTE_API_KEY")
    remote_timeout_seconds: float = Field(10.0, gt=0, alias="REMOTE_TIMEOUT_SECONDS")

    # Active reachability poll; transitions from platform events are reported separately.
    connectivity_check_interval_seconds: float = Field(30.0, gt=0, alias="CONNECTIVITY_CHECK_INTERVAL_SECONDS")
    # Held (failed) mutating requests older than this are dropped and reported as lost writes.
    replay_retention_minutes: int = Field(24 * 60, gt=0, alias="REPLAY_RETENTION_MINUTES")

    overpayment_policy: OverpaymentPolicy = Field(OverpaymentPolicy.REJECT, alias="OVERPAYMENT_POLICY")
    sync_auto_activate: bool = Field(True, alias="SYNC_AUTO_ACTIVATE")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
