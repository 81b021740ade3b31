from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List

class Settings(BaseSettings):
    app_env: str = Field("dev", alias="APP_ENV")
    app_host: str = Field("0.0.0.0", alias="APP_HOST")
    app_port: int = Field(5000, alias="APP_PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # --- Storage ---
    storage_root: str = Field("uploads", alias="MEDIA_STORAGE_ROOT")
    # reserved top-level dir for in-flight uploads; must live on the same volume as the root
    staging_dir_name: str = Field("tmp", alias="MEDIA_STAGING_DIR")
    url_prefix: str = Field("/media", alias="MEDIA_URL_PREFIX")
    # 0 = unlimited
    max_upload_mb: int = Field(0, alias="MAX_UPLOAD_MB")

    # comma-separated
    cors_origins: str = Field("https://console.arcstrum.com,http://localhost:3000", alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def max_upload_bytes(self) -> int:
        return max(self.max_upload_mb, 0) * 1024 * 1024

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
