"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Look for .env in the invocation directory first, then next to the package
# config.py is at: profile_sharing/core/config.py
_current_file = Path(__file__).resolve()
_project_root = _current_file.parent.parent.parent
ENV_FILE = Path.cwd() / ".env"
if not ENV_FILE.exists():
    ENV_FILE = _project_root / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=False)


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "profile-sharing"

    # PXE endpoint
    pxe_url: str = Field(default="http://localhost:8080", description="PXE JSON-RPC endpoint URL")
    pxe_request_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Timeout for a single JSON-RPC round trip (seconds)"
    )
    pxe_ready_timeout_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description="How long to wait for the PXE to answer getNodeInfo before giving up"
    )
    pxe_poll_interval_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Polling interval for readiness and transaction receipts"
    )
    tx_timeout_seconds: float = Field(
        default=300.0,
        ge=1.0,
        le=3600.0,
        description="Maximum time to wait for a sent transaction to be mined"
    )

    # Contract
    addresses_path: str = Field(
        default="addresses.json",
        description="Address book file (relative paths resolve against the working directory)"
    )
    artifact_path: str = Field(
        default="contract/target/profile_sharing-ProfileSharing.json",
        description="Compiled contract artifact"
    )
    contract_name: str = Field(
        default="profileSharing",
        min_length=1,
        description="Logical contract name used as the address book key"
    )

    # Identities
    owner_account_index: int = Field(default=0, ge=0, description="Test account position for the owner role")
    recipient_account_index: int = Field(default=1, ge=0, description="Test account position for the recipient role")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="text",
        description="Log format: 'json' for structured logging, 'text' for plain text"
    )
    log_file_enabled: bool = Field(default=False, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/profile_sharing.log",
        description="Path to log file (relative to the working directory)"
    )
    log_file_retention: int = Field(default=7, ge=1, description="Number of days to keep log files")
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (keys, tokens) - NOT RECOMMENDED"
    )

    # Tracing
    enable_tracing: bool = Field(default=False, description="Enable OpenTelemetry tracing")
    tracing_service_name: str = Field(default="profile-sharing", description="Service name for tracing")

    @field_validator("pxe_url")
    @classmethod
    def normalize_pxe_url(cls, v: str) -> str:
        """Add a scheme if missing and drop the trailing slash"""
        v = v.strip()
        if not v.startswith("http://") and not v.startswith("https://"):
            v = f"http://{v}"
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def normalize_log_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in ("json", "text"):
            raise ValueError(f"Unknown log format: {v}")
        return fmt

    @property
    def addresses_file(self) -> Path:
        """Address book path resolved against the working directory"""
        return self._resolve(self.addresses_path)

    @property
    def artifact_file(self) -> Path:
        """Artifact path resolved against the working directory"""
        return self._resolve(self.artifact_path)

    @staticmethod
    def _resolve(raw: str, base: Optional[Path] = None) -> Path:
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = (base or Path.cwd()) / path
        return path

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
