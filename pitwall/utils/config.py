"""
Configuration utilities.
"""
import os
from typing import Any, List, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

TRUE_VALUES = {"1", "true", "yes", "on"}

class AuthSettings(BaseModel):
    """Google Sign-In settings."""
    client_id: str = ""
    allowed_email: str = ""

    @field_validator("client_id", "allowed_email")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @property
    def missing(self) -> List[str]:
        """Names of the settings that are not configured."""
        missing = []
        if not self.client_id:
            missing.append("GOOGLE_CLIENT_ID")
        if not self.allowed_email:
            missing.append("ALLOWED_EMAIL")
        return missing

    @property
    def configured(self) -> bool:
        return not self.missing

class TrackerSettings(BaseModel):
    """Tracker settings."""
    auth: AuthSettings = AuthSettings()
    require_auth: bool = True
    storage_dir: str = "data/active"
    backup_dir: str = "data/backups"
    log_level: str = "INFO"
    log_file: Optional[str] = None

class Config:
    """Configuration manager."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration.

        Args:
            env_file: Optional .env file to load into the environment first
        """
        if env_file:
            load_dotenv(env_file)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return os.environ.get(key, default)

    def get_flag(self, key: str, default: bool) -> bool:
        """Get a boolean configuration value."""
        value = self.get(key)
        if value is None:
            return default
        return value.strip().lower() in TRUE_VALUES

    def get_auth_settings(self) -> AuthSettings:
        """Get Google Sign-In settings."""
        return AuthSettings(
            client_id=self.get("GOOGLE_CLIENT_ID", ""),
            allowed_email=self.get("ALLOWED_EMAIL", ""),
        )

    def get_settings(self) -> TrackerSettings:
        """Get all tracker settings."""
        return TrackerSettings(
            auth=self.get_auth_settings(),
            require_auth=self.get_flag("PITWALL_REQUIRE_AUTH", True),
            storage_dir=self.get("PITWALL_STORAGE_DIR", "data/active"),
            backup_dir=self.get("PITWALL_BACKUP_DIR", "data/backups"),
            log_level=self.get("PITWALL_LOG_LEVEL", "INFO"),
            log_file=self.get("PITWALL_LOG_FILE"),
        )
