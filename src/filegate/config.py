"""Runtime settings, read from ``FILEGATE_*`` environment variables or ``.env``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_FILE_SIZE = 200 * 1024 * 1024  # 200 MiB


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FILEGATE_",
        extra="ignore",
    )

    upload_dir: Path = Path("./uploads")
    share_base_url: str = "https://example.com/share"
    global_max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)

    # Share-link tokens are hex encoded, so the token is twice this long.
    token_bytes: int = Field(default=32, ge=16)
    password_schemes: list[str] = ["pbkdf2_sha256", "bcrypt"]

    def share_url(self, token: str) -> str:
        return f"{self.share_base_url.rstrip('/')}/{token}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
