"""
HealthSync Compliance Configuration

Centralized configuration management using Pydantic Settings.
Supports environment variables and .env files.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Main application settings."""
    
    model_config = SettingsConfigDict(
        env_prefix="HEALTHSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    log_json: bool = True


class EncryptionSettings(BaseSettings):
    """Field-level encryption keys and key derivation parameters."""
    
    model_config = SettingsConfigDict(
        env_prefix="ENCRYPTION_",
        env_file=".env",
        extra="ignore",
    )
    
    # Version 1 key; data written before versioning existed uses it
    primary_key: SecretStr = Field(default=SecretStr("default-key-for-development"))
    # Key for the active version when key_version > 1
    secondary_key: SecretStr | None = None
    key_version: int = Field(default=1, ge=1)
    
    salt: str = "hipaa-compliance-salt"
    iterations: int = Field(default=480_000, ge=1)
    key_cache_size: int = Field(default=16, ge=1)


class AuditSettings(BaseSettings):
    """Audit trail settings."""
    
    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        env_file=".env",
        extra="ignore",
    )
    
    system_id: str = "healthcare-platform"
    
    # Retention periods (in years)
    default_retention_years: int = 6
    agreement_retention_years: int = 7
    extended_retention_years: int = 10
    
    diagnostics_buffer_size: int = 100


class AgreementSettings(BaseSettings):
    """Business Associate Agreement settings."""
    
    model_config = SettingsConfigDict(
        env_prefix="AGREEMENT_",
        env_file=".env",
        extra="ignore",
    )
    
    term_years: int = Field(default=1, ge=1)
    expiration_notice_days: int = Field(default=30, ge=0)


class AnalyzerSettings(BaseSettings):
    """Compliance analyzer thresholds."""
    
    model_config = SettingsConfigDict(
        env_prefix="ANALYZER_",
        env_file=".env",
        extra="ignore",
    )
    
    # Off-hours window: hour < start or hour > end
    off_hours_start: int = Field(default=6, ge=0, le=23)
    off_hours_end: int = Field(default=22, ge=0, le=23)
    off_hours_min_count: int = 3
    
    rapid_access_patient_threshold: int = 20
    rapid_access_window_minutes: int = 60
    
    high_volume_threshold: int = 1000
    timezone: str = "UTC"


class Settings:
    """
    Aggregated settings container.
    
    Usage:
        from healthsync_compliance.config import get_settings
        settings = get_settings()
        print(settings.audit.system_id)
        print(settings.encryption.key_version)
    """
    
    def __init__(self):
        self.app = AppSettings()
        self.encryption = EncryptionSettings()
        self.audit = AuditSettings()
        self.agreements = AgreementSettings()
        self.analyzer = AnalyzerSettings()
    
    @property
    def is_development(self) -> bool:
        return self.app.env == "development"
    
    @property
    def is_production(self) -> bool:
        return self.app.env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    
    Returns:
        Settings: The application settings
    """
    return Settings()
