from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    # Class invite codes: fixed length, base36 alphabet, lowercase unless configured otherwise
    invite_code_length: int = Field(6, ge=4, le=20, alias="INVITE_CODE_LENGTH")
    invite_code_uppercase: bool = Field(False, alias="INVITE_CODE_UPPERCASE")
    invite_code_max_attempts: int = Field(10, ge=1, alias="INVITE_CODE_MAX_ATTEMPTS")

    default_page_limit: int = Field(10, ge=1, alias="DEFAULT_PAGE_LIMIT")
    max_page_limit: int = Field(100, ge=1, alias="MAX_PAGE_LIMIT")

    recent_activity_limit: int = Field(10, ge=1, alias="RECENT_ACTIVITY_LIMIT")
    enrollment_trends_days: int = Field(30, ge=1, alias="ENROLLMENT_TRENDS_DAYS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
