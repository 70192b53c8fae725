"""Application configuration management using Pydantic Settings."""

from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finsim.models.simulation.config import SimulationOptions

DEV_SECRET_KEY = "dev-secret-key"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")

    # Flask Configuration
    secret_key: str = Field(default=DEV_SECRET_KEY, alias="SECRET_KEY")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Simulation defaults
    simulation_interval: str = Field(default="month", alias="SIMULATION_INTERVAL")
    safe_withdrawal_rate: float = Field(
        default=0.04, gt=0, le=1, alias="SAFE_WITHDRAWAL_RATE"
    )
    preservation_age: float = Field(default=60, ge=0, le=120, alias="PRESERVATION_AGE")

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v):
        """Ensure SECRET_KEY is not empty or a placeholder."""
        if not v or v == "your-secret-key-here-change-in-production":
            raise ValueError("SECRET_KEY must be set to a secure value")
        return v

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v):
        """Validate application environment."""
        allowed_envs = {"development", "testing", "production"}
        if v not in allowed_envs:
            raise ValueError(f"APP_ENV must be one of {allowed_envs}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @field_validator("simulation_interval")
    @classmethod
    def validate_simulation_interval(cls, v):
        """Validate the simulation step interval."""
        allowed_intervals = {"week", "fortnight", "month", "year"}
        if v not in allowed_intervals:
            raise ValueError(f"SIMULATION_INTERVAL must be one of {allowed_intervals}")
        return v

    @model_validator(mode="after")
    def validate_production_secret(self):
        if self.app_env == "production" and self.secret_key == DEV_SECRET_KEY:
            raise ValueError("SECRET_KEY must be overridden in production")
        return self

    def simulation_options(self) -> SimulationOptions:
        """Build engine options from the configured simulation defaults."""
        return SimulationOptions(
            interval=self.simulation_interval,
            safe_withdrawal_rate=self.safe_withdrawal_rate,
            preservation_age=self.preservation_age,
        )


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get application settings instance."""
    if env_file is not None:
        return Settings(_env_file=env_file)
    return Settings()


# Global settings instance - created lazily on first use
_settings: Optional[Settings] = None


def get_global_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_global_settings() -> None:
    """Reset global settings instance (useful for testing)."""
    global _settings
    _settings = None
