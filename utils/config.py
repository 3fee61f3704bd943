"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _split_origins(value: str) -> list:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    allowed_origins: list = field(
        default_factory=lambda: _split_origins(os.getenv("ALLOWED_ORIGINS", ""))
    )

    # Storage
    storage_backend: str = field(
        default_factory=lambda: os.getenv("STORAGE_BACKEND", "local").lower()
    )
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    supabase_url: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_service_key: Optional[str] = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    )
    supabase_bucket: str = field(
        default_factory=lambda: os.getenv("SUPABASE_BUCKET", "intake-uploads")
    )

    # CRM webhook
    webhook_url: Optional[str] = field(default_factory=lambda: os.getenv("INTAKE_WEBHOOK_URL") or None)
    webhook_timeout: float = field(
        default_factory=lambda: float(os.getenv("INTAKE_WEBHOOK_TIMEOUT", "10"))
    )

    # Retention
    retention_days: int = field(default_factory=lambda: int(os.getenv("RETENTION_DAYS", "60")))

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary. Secrets are masked."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "allowed_origins": list(self.allowed_origins),
            "storage_backend": self.storage_backend,
            "data_dir": self.data_dir,
            "supabase_url": self.supabase_url,
            "supabase_service_key": "***" if self.supabase_service_key else None,
            "supabase_bucket": self.supabase_bucket,
            "webhook_url": self.webhook_url,
            "webhook_timeout": self.webhook_timeout,
            "retention_days": self.retention_days,
        }
