from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "SIP Goal Planner"
    API_V1_STR: str = "/api"
    
    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    
    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: str) -> str:
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str]) -> list[str] | str:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    BACKEND_CORS_ORIGINS: list[str] | str = []

    # External rate engine
    RATE_ENGINE_URL: str = "http://localhost:9000/sip"
    # None blocks until the engine answers
    RATE_ENGINE_TIMEOUT_SECONDS: Optional[float] = None

    # Catalog
    SEED_INSTRUMENTS_ON_STARTUP: bool = True

    # Extra
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", 
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
