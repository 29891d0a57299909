from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "FitCoach"
    log_level: str = "INFO"

    db_host: str = "db"
    db_port: int = 3306
    db_name: str = "fitcoach"
    db_user: str = "fitcoach"
    db_password: str = "fitcoachpass"
    database_url_override: str | None = None

    jwt_secret: str = "super-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    gemini_api_key: str | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout: int = 120

    chat_model: str = "gemini-2.0-flash"
    chat_fallback_model: str = "gemini-2.5-pro"
    vision_model: str = "gemini-2.5-flash"
    plan_model: str = "gemini-2.5-pro"

    retry_max_attempts: int = 3
    chat_retry_initial_delay_ms: int = 2000
    retry_initial_delay_ms: int = 1000

    chat_history_window: int = 10
    chat_discard_orphan_turns: bool = False

    max_image_bytes: int = 5 * 1024 * 1024

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


settings = Settings()
