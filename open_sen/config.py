from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # App
    app_env: str = Field(default="development")
    log_level: str = Field(default="info")

    # Supabase
    supabase_url: str = Field(default="")
    supabase_key: str = Field(default="")

    # Outbound HTTP: sent as User-Agent on every fetch
    user_agent: str = Field(default="open-sen")
    reddit_user_agent: str = Field(default="open-sen:v1.0.0 (by /u/open-sen)")
    http_timeout_seconds: float = Field(default=15.0)

    # Daily collection (UTC)
    collection_cron_hour: int = Field(default=0)
    collection_cron_minute: int = Field(default=0)

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


settings = Settings()
