from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Structure inspection settings, read from the environment and ``.env``."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/structure_inspection"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    SLOW_QUERY_THRESHOLD_MS: int = 500

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// URLs; the engine needs the asyncpg driver."""
        if v and v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    # CORS (inspection web app)
    FRONTEND_URL: str = "http://localhost:5173"

    # Identity numbers: attempts at seeding a location counter before giving up
    SEQUENCE_ALLOCATION_RETRIES: int = Field(3, ge=1)

    # Ratings
    INSPECTION_MAX_PHOTOS_PER_COMPONENT: int = Field(10, ge=0)

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    DOCS_ENABLED: bool = True

    @model_validator(mode='after')
    def lock_down_production(self) -> "Settings":
        if self.ENVIRONMENT == "production":
            self.DEBUG = False
            self.DOCS_ENABLED = False
        return self

    @property
    def sqlalchemy_echo(self) -> bool:
        """Echo SQL only while debugging locally."""
        return self.DEBUG and self.ENVIRONMENT == "development"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
