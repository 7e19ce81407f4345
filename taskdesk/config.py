from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    base_url: str = "http://localhost:8000"
    database_url: str = "postgresql+psycopg://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    redis_timeout_seconds: float = 0.5

    jwt_secret: str = "dev-secret-change-me"
    jwt_issuer: str = "taskdesk"
    jwt_audience: str = "taskdesk"

    # session lifecycle
    access_token_ttl_seconds: int = 900
    refresh_token_ttl_days: int = 7
    inactivity_window_minutes: int = 30
    activity_touch_interval_seconds: int = 5

    magic_link_expires_minutes: int = 15
    token_pepper: str = "dev-pepper-change-me"

    # render missing resources as a plain denial
    mask_not_found: bool = True

    # rate limiting (redis)
    rate_limit_enabled: bool = True
    rate_limit_auth_request_link_per_min: int = 20
    rate_limit_auth_redeem_per_min: int = 30
    rate_limit_auth_refresh_per_min: int = 60

settings = Settings()
