"""
PhotoFiler Backend: Application Configuration
==============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.

Storage layout (defaults, all relative to the backend CWD):
    ./data/
    ├── app_private/        AppPrivateStrategy root (LabeledPhotos/<label>/...)
    ├── media_library/      Device gallery stand-in (Camera/, Albums/<album>/)
    ├── documents/          Scoped-storage document tree (content:// URIs)
    ├── exports/            Files handed to the share/export action
    └── cache/              Temporary copies made before asset creation
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

SUPPORTED_PLATFORMS = {"android", "ios"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    Attributes are grouped by concern for readability.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # What: Async SQLAlchemy URL for the key-value store holding the root
    # folder reference. Format: sqlite+aiosqlite:///<path>
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/photofiler.db",
        description="Async database URL for persisted directory references",
    )

    # What: Versioned key under which the root DirectoryReference is stored.
    # Bump the suffix when the record shape changes.
    root_folder_key: str = Field(default="photofiler.root_folder_v1")

    # ── Storage Roots ─────────────────────────────────────────────────────
    app_private_root: str = Field(default="./data/app_private")
    media_library_root: str = Field(default="./data/media_library")
    documents_root: str = Field(default="./data/documents")
    export_root: str = Field(default="./data/exports")
    cache_root: str = Field(default="./data/cache")

    # What: Container directory inside app-private storage. Album and label
    # folders are named after the label (or the folderNameHint for the
    # gallery album), never after this value.
    default_folder_name: str = Field(default="LabeledPhotos", min_length=1)

    # ── Platform ──────────────────────────────────────────────────────────
    # What: Capability profile to load (see services/platform.py).
    platform: str = Field(default="android")

    # What: Android API level; below 33 the legacy WRITE_EXTERNAL_STORAGE
    # permission is requested in addition to the media permission.
    android_api_level: int = Field(default=34, ge=21, le=100)

    # What: Running inside a restricted developer-preview runtime where folder
    # pickers are unavailable.
    restricted_runtime: bool = Field(default=False)

    # What: Device model string used in generated file names.
    # None → "unknown_device".
    device_model: Optional[str] = Field(default=None)

    # Authority segment of content:// URIs issued by the document provider.
    documents_authority: str = Field(default="com.photofiler.documents")

    # ── I/O Retry Configuration ───────────────────────────────────────────
    # What: Tenacity retry settings for file copies hitting transient errors
    # (BlockingIOError, InterruptedError).
    io_retry_max_attempts: int = Field(default=3, ge=1, le=10)
    io_retry_min_wait: float = Field(default=0.05, ge=0, le=5)
    io_retry_max_wait: float = Field(default=0.5, ge=0, le=30)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:8081")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="127.0.0.1")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("platform")
    @classmethod
    def validate_platform(cls, v: str) -> str:
        """Ensures a capability profile exists for the platform name."""
        lower = v.lower()
        if lower not in SUPPORTED_PLATFORMS:
            raise ValueError(
                f"Invalid platform '{v}'. Must be one of: {sorted(SUPPORTED_PLATFORMS)}"
            )
        return lower

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "PHOTOFILER_",
        "case_sensitive": False,
    }

    def storage_roots(self) -> dict:
        """
        What:  Named storage directories, used by startup and the health check.
        Returns: Mapping of role → configured path string.
        """
        return {
            "app_private": self.app_private_root,
            "media_library": self.media_library_root,
            "documents": self.documents_root,
            "exports": self.export_root,
            "cache": self.cache_root,
        }


# Singleton instance, imported throughout the application
settings = Settings()
