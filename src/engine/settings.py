# src/engine/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./codeguard_jobs.db"

    # download link lifetime, independent of the expiry embedded in the script
    download_link_ttl_hours: int = 24
    script_timezone: str = "Asia/Kuala_Lumpur"

    max_code_chars: int = 1_000_000
    max_archive_members: int = 200
    max_archive_bytes: int = 10 * 1024 * 1024

    model_config = SettingsConfigDict(env_prefix="CODEGUARD_", env_file=".env", extra="ignore")


settings = Settings()
