from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # .env is loaded manually in get_settings() so a missing/unreadable file doesn't break
    # containers or CI.
    model_config = SettingsConfigDict(extra="ignore")

    app_env: str = "dev"
    database_url: str = "sqlite:///./mediarelay.db"
    allowed_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Local cache stage
    upload_dir: str = "./uploads"
    max_upload_bytes: int = 10_000_000
    keep_cached_uploads: bool = False
    upload_async_threshold_bytes: int = 5_000_000

    images_allow: str = ""
    images_deny: str = ""
    documents_allow: str = ""
    documents_deny: str = ""

    # Remote storage
    storage_backend: str = "local"  # local|cloudinary|s3
    remote_folder: str = "posts"

    media_dir: str = "./media"
    media_url_base: str = "/media"

    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None

    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    s3_public_base_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None

    def ensure_dirs(self) -> None:
        Path(self.upload_dir).mkdir(parents=True, exist_ok=True)
        if self.storage_backend == "local":
            Path(self.media_dir).mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    try:
        from dotenv import load_dotenv

        load_dotenv(".env", override=False)
    except Exception:
        pass
    s = Settings()
    s.ensure_dirs()
    return s
