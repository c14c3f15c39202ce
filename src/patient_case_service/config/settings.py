"""Service configuration settings."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    service_name: str = "patient-case-service"
    environment: str = "development"
    port: int = 4000

    # Persistence: "inmemory" or "sql"
    case_storage_type: str = "inmemory"
    database_url: str = "sqlite+aiosqlite:///./patient_cases.db"

    # Blob storage: "local" or "inmemory"
    blob_storage_type: str = "local"
    upload_dir: str = "./uploads"

    # Upload limits
    max_upload_bytes: int = 20 * 1024 * 1024
    max_upload_files: int = 10

    # Session tokens for the fixed clinician identity
    jwt_secret: str = "secret123"
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = 120
    fixed_email: str = "doctor@example.com"
    fixed_password: str = "MyStrongPass123"
    cookie_secure: bool = False

    # CORS configuration
    cors_origins: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
