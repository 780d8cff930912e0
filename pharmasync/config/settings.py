"""Client Settings - Central Configuration"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # REST API
    api_base_url: str = "http://localhost:5000/api"
    http_timeout_seconds: float = 15.0

    # Notification sync
    poll_interval_seconds: int = 20  # Unread-count poll period
    poll_max_in_flight: int = 5  # Overlapping ticks allowed before APScheduler skips one
    notification_page_size: int = 20

    # Persisted session (access token + actor snapshot)
    credentials_path: str = "./storage/session.json"

    # Navigation targets
    login_path: str = "/login"
    unauthorized_path: str = "/unauthorized"
    admin_dashboard_path: str = "/admin/dashboard"
    patient_home_path: str = "/patient"

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"
    log_to_file: bool = False

    # Environment
    environment: str = "development"
    debug: bool = True

    # Development stub server
    dev_jwt_secret: str = "pharmasync-dev-secret-change-me-0123456789"
    dev_access_token_minutes: int = 15
    dev_server_host: str = "127.0.0.1"
    dev_server_port: int = 5000

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
