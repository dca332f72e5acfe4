"""edukb configuration settings using Pydantic.

Values come from ``EDUKB_*`` environment variables or a local ``.env`` file.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class EduKBSettings(BaseSettings):
    """Central configuration for the ingestion tool."""

    model_config = SettingsConfigDict(
        env_prefix="EDUKB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Wikibase ---
    api_url: str = Field(default="https://chileopendata.imfd.cl/w/api.php")
    username: str = Field(default="")
    password: str = Field(default="")
    language: str = Field(default="es")
    timeout: float = 30.0
    user_agent: str = "edukb/0.1 (school data loader)"

    # --- Ingestion ---
    max_rows: int = Field(default=20, ge=1)
    csv_encoding: str = "utf-8-sig"
    csv_delimiter: str = ";"
    execution_log_path: Optional[Path] = Path("execution.csv")
    catalog_path: Optional[Path] = None

    # --- Logging ---
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


_settings: Optional[EduKBSettings] = None


def get_settings() -> EduKBSettings:
    """Get or create the settings instance"""
    global _settings
    if _settings is None:
        _settings = EduKBSettings()
    return _settings


def reload_settings() -> EduKBSettings:
    """Re-read settings from the environment"""
    global _settings
    _settings = EduKBSettings()
    return _settings
