"""Server configuration and logging setup."""

import logging
import sys
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import StorageConfiguration

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ServerConfig(BaseSettings):
    """Settings read from SIDEBERY_* environment variables (or a .env file)."""

    model_config = SettingsConfigDict(
        env_prefix="SIDEBERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_path: Path = Field(default=Path("data/snapshots.db"), description="SQLite database file")
    log_level: str = Field(default="INFO", description="Root log level")
    transport: Literal["stdio", "http"] = Field(default="stdio", description="MCP transport")
    host: str = Field(default="0.0.0.0", description="Bind address for the HTTP transport")
    port: int = Field(default=4000, description="Port for the HTTP transport")
    max_document_bytes: int = Field(
        default=50 * 1024 * 1024, description="Largest snapshot document accepted on upload"
    )

    def get_storage_config(self) -> StorageConfiguration:
        """Build the storage configuration handed to SnapshotStore."""
        return StorageConfiguration(
            db_path=self.db_path,
            max_document_bytes=self.max_document_bytes,
        )


def setup_logging(level: str | int = logging.INFO) -> None:
    """Send log records to stderr (stdout carries the MCP stdio stream)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    has_console = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in root.handlers
    )
    if not has_console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
