from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    allowed_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    hospital_api_base_url: str = "http://localhost:5000/api"
    hospital_api_timeout_seconds: int = 30

    usage_window_days: int = 30
    default_page_limit: int = 20
    max_page_limit: int = 100


settings = Settings()
