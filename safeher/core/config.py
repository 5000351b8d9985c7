from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = Field("SafeHer SOS", env="APP_NAME")
    app_version: str = Field("0.1.0", env="APP_VERSION")

    database_url: str = Field("sqlite:///./data/safeher.db", env="DATABASE_URL")

    # Rate limiting for SOS triggers
    sos_rate_window_minutes: int = Field(default=60, env="SOS_RATE_WINDOW_MINUTES")
    sos_rate_max_per_window: int = Field(default=5, env="SOS_RATE_MAX_PER_WINDOW")
    sos_rate_block_minutes: int = Field(default=30, env="SOS_RATE_BLOCK_MINUTES")

    event_max_age_hours: int = Field(default=24, env="EVENT_MAX_AGE_HOURS")
    tracking_backend: str = Field(default="memory", env="TRACKING_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379/0", env="REDIS_URL")

    notify_timeout_seconds: float = Field(default=10.0, env="NOTIFY_TIMEOUT_SECONDS")
    maps_url_template: str = Field(default="https://maps.google.com/?q={lat},{lng}", env="MAPS_URL_TEMPLATE")

    twilio_account_sid: str | None = Field(default=None, env="TWILIO_ACCOUNT_SID")
    twilio_auth_token: str | None = Field(default=None, env="TWILIO_AUTH_TOKEN")
    twilio_phone_number: str | None = Field(default=None, env="TWILIO_PHONE_NUMBER")

    smtp_host: str | None = Field(default=None, env="SMTP_HOST")
    smtp_port: int = Field(default=587, env="SMTP_PORT")
    smtp_user: str | None = Field(default=None, env="SMTP_USER")
    smtp_pass: str | None = Field(default=None, env="SMTP_PASS")
    smtp_from_email: str = Field(default="alerts@safeher.app", env="SMTP_FROM_EMAIL")

    offline_max_retries: int = Field(default=3, env="OFFLINE_MAX_RETRIES")

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
