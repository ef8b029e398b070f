# tradesite/core/config.py
from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # General
    app_name: str = "Trade Catalog API"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Storage backend: "file" (data_dir) or "blob" (MongoDB collection)
    storage_backend: Literal["file", "blob"] = "file"
    data_dir: Path = Path("data")
    seed_on_startup: bool = True

    # MongoDB (blob backend)
    mongo_uri: Optional[str] = None
    mongo_db_name: str = "tradesite"
    blob_collection: str = "blobs"
    blob_prefix: str = "site-data"

    # HTTP
    cors_origins: List[str] = ["http://localhost:5174"]
    frontend_url: Optional[str] = None
    max_request_bytes: int = 10 * 1024 * 1024

    # Client side (provider / gateway / local cache)
    api_base_url: Optional[str] = None
    local_cache_dir: Path = Path(".cache/tradesite")
    local_cache_quota_bytes: int = 5 * 1024 * 1024
    upload_threshold_bytes: int = 1024 * 1024
    import_batch_size: int = 10

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def allowed_origins(self) -> List[str]:
        origins = list(self.cors_origins)
        if self.frontend_url:
            origins.append(self.frontend_url)
        return origins


# Global instance used across the app
settings = Settings()
