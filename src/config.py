from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # App
    app_env: str = Field(default="development")
    log_level: str = Field(default="info")

    # Discord — one webhook per category
    webhook_url_solo: str = Field(default="")
    webhook_url_coop: str = Field(default="")
    webhook_url_multi: str = Field(default="")
    webhook_url_demo: str = Field(default="")

    # "links" appends media links to the message, "thread" posts them as follow-ups
    media_mode: str = Field(default="links")

    # Steam store
    store_base_url: str = Field(default="https://store.steampowered.com")
    search_sort_by: str = Field(default="Released_DESC")
    search_filter_param: str = Field(default="vrsupport")
    search_filter_value: str = Field(default="402")
    store_country_code: str = Field(default="")
    store_language: str = Field(default="")
    http_timeout_seconds: float = Field(default=60.0)

    # Ledger
    ledger_backend: str = Field(default="sqlite")
    ledger_db_path: str = Field(default="db/steam_scout.db")
    supabase_url: str = Field(default="")
    supabase_key: str = Field(default="")

    # Scheduling
    poll_interval_minutes: int = Field(default=15)
    item_delay_seconds: float = Field(default=5.0)

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def thread_mode(self) -> bool:
        return self.media_mode.lower() == "thread"


def load_settings() -> Settings:
    """Read a fresh Settings from the environment and .env."""
    return Settings()


settings = Settings()
