from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Directory Builder"
    app_env: str = "development"  # development, testing, production
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./dirbuilder.db"
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_auto_create: bool = True  # create_all at startup instead of Alembic

    # Shutdown
    shutdown_grace_period: int = 30

    # Publishing
    public_base_domain: str = "example.com"

    # Provisioning saga
    provisioning_step_timeout_seconds: float | None = 300.0  # None disables the deadline
    provisioning_step_delay_seconds: float = 0.0  # Simulated integration latency
    provisioning_single_active_job: bool = True

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    @field_validator("provisioning_step_timeout_seconds")
    @classmethod
    def validate_step_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("PROVISIONING_STEP_TIMEOUT_SECONDS must be positive (or unset)")
        return v

    @field_validator("provisioning_step_delay_seconds")
    @classmethod
    def validate_step_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("PROVISIONING_STEP_DELAY_SECONDS must not be negative")
        return v

    @field_validator("public_base_domain")
    @classmethod
    def validate_public_base_domain(cls, v: str) -> str:
        """Base domain is joined onto tenant domains, so it must be a bare host."""
        if "://" in v or "/" in v:
            raise ValueError(
                f"PUBLIC_BASE_DOMAIN must be a bare host name like 'example.com', got '{v}'"
            )
        return v.strip(".").lower()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()
