## app/core/config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the application
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "development"
    allowed_cors_urls: str = "*"

    # A full SQLAlchemy URL takes precedence over the db_* parts
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_user: str = "root"
    db_password: str = ""
    db_database: str = "staffmanager"
    db_port: int = 3306

    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    # UCanSign integration
    ucansign_base_url: str = "https://app.ucansign.com/openapi"
    ucansign_api_key: Optional[str] = None
    ucansign_test_mode: bool = False
    ucansign_timeout_seconds: float = 30.0
    ucansign_user_agent: str = "StaffManager/1.0"

    # The provider calls the webhook cross-origin
    webhook_allowed_origin: str = "*"

    @property
    def db_url(self) -> str:
        """
        Sync database URL
        """
        if self.database_url:
            return self.database_url
        return f"mysql+pymysql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_database}"

    @property
    def cors_origins(self) -> list:
        """
        Allowed CORS origins for the browser-facing routes
        """
        return [url.strip() for url in self.allowed_cors_urls.split(",") if url.strip()]


settings = Settings()
