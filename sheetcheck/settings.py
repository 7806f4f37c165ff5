from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SHEETCHECK_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "sheetcheck"
    LOG_LEVEL: str = "INFO"
    # Per uploaded file.
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024


settings = Settings()
