from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Глобальные настройки приложения."""

    project_name: str = "Cosmic Events API"
    api_prefix: str = "/api"

    db_host: str = "db"
    db_port: int = 5432
    db_user: str = "cosmic"
    db_password: str = "cosmic"
    db_name: str = "cosmic"
    db_url: str | None = None

    backend_cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    secret_key: str = "CHANGE_ME_IN_PROD"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # напоминания о событиях
    reminder_lead_minutes: int = 60
    reminder_sweep_interval_seconds: int = 60
    reminder_sweep_enabled: bool = True

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def database_url(self) -> str:
        """Собирает URL подключения к базе данных."""
        if self.db_url:
            return self.db_url
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


settings = Settings()
