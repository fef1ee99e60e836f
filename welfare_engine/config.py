"""
Configuration settings for the Welfare Scheme Eligibility Engine
"""
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application Configuration
    app_name: str = Field(default="Welfare Scheme Eligibility Engine")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_prefix: str = Field(default="")
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:8080")

    # Storage Configuration
    storage_backend: str = Field(default="memory", pattern=r"^(memory|mongo)$")
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    mongodb_db_name: str = Field(default="welfare_schemes")
    seed_sample_schemes: bool = Field(default=False)

    # Session lifecycle
    session_idle_timeout_minutes: float = Field(default=30, gt=0)
    session_sweep_interval_seconds: float = Field(default=60, gt=0)

    # Eligibility policy
    catalogue_timeout_seconds: float = Field(default=5.0, gt=0)
    benefit_priority: str = Field(default="financial,subsidy,loan,service")
    alternatives_limit: int = Field(default=3, ge=1)
    min_confidence: float = Field(default=0.0, ge=0, le=1)
    extra_sensitive_attributes: str = Field(default="")

    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        return _split_csv(self.cors_origins)

    def get_benefit_priority_list(self) -> List[str]:
        """Get benefit types ordered from highest to lowest priority"""
        return [item.lower() for item in _split_csv(self.benefit_priority)]

    def get_extra_sensitive_attributes_list(self) -> List[str]:
        """Get attributes marked sensitive by deployment policy"""
        return [item.lower() for item in _split_csv(self.extra_sensitive_attributes)]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


# Create global settings instance
settings = Settings()
