from pydantic_settings import BaseSettings
from pydantic import Field
from pathlib import Path
from typing import List


class Config(BaseSettings):
    # Database Configuration (SQLite via aiosqlite by default, asyncpg for PostgreSQL)
    database_url: str = Field(
        default=f"sqlite+aiosqlite:///{Path(__file__).parent.parent.parent / 'data' / 'edupro.db'}",
        alias="DB_URL",
    )

    # JWT Configuration
    jwt_secret: str = Field(default="change-me", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_days: int = Field(default=7, alias="ACCESS_TOKEN_EXPIRE_DAYS")
    auth_cookie_name: str = Field(default="auth-token", alias="AUTH_COOKIE_NAME")

    # Comma separated list of allowed origins
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    environment: str = Field(
        default="development", alias="ENVIRONMENT"
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instantiate the settings
config = Config()
