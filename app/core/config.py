from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "b2-upload-service"
    app_env: str = "development"
    app_port: int = 10723
    log_level: str = "INFO"

    cors_enabled: bool = True

    # Backblaze B2
    b2_application_key_id: str = ""
    b2_application_key: str = ""
    b2_bucket_name: str = ""
    b2_auth_url: str = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"
    b2_info_author: str = "B2UploadService"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def b2_configured(self) -> bool:
        return bool(self.b2_application_key_id and self.b2_application_key and self.b2_bucket_name)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
