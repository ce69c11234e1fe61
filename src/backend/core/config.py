"""
Ballotbox settings.

Values come from the environment, falling back to a .env file next to the
process. Names are case sensitive and match the deployment variables.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-wide configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Ballotbox"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # Shared with the identity provider that signs access tokens
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Cosmos DB: AZURE_COSMOS_CONNECTION_STRING (key auth, emulator) wins over
    # AZURE_COSMOS_ENDPOINT (Azure AD auth)
    AZURE_COSMOS_ENDPOINT: str | None = None
    AZURE_COSMOS_CONNECTION_STRING: str | None = None
    AZURE_COSMOS_DATABASE: str = "ballotbox"
    AZURE_COSMOS_DISABLE_SSL: bool = False
    AZURE_COSMOS_CREATE_CONTAINERS: bool = False

    # Comma separated, or a JSON list
    CORS_ORIGINS: str = "http://localhost:3000"

    CANDIDATES_PAGE_SIZE: int = 10
    CANDIDATES_MAX_PAGE_SIZE: int = 100

    @field_validator("SECRET_KEY")
    @classmethod
    def secret_key_present(cls, v: str) -> str:
        if not v:
            raise ValueError("SECRET_KEY must be set in environment")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        raw = self.CORS_ORIGINS.strip()
        if raw.startswith("["):
            import json

            return [str(origin) for origin in json.loads(raw)]
        return [origin.strip() for origin in raw.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
