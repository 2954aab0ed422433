"""Configuration management using Pydantic BaseSettings.

Loads configuration from ORACLE_* environment variables with defaults
suitable for a single-user install under ~/.oracle. Override via
environment variables or a .env file.

Usage:
    from oracle_kb_common.config import get_settings

    settings = get_settings()
    print(settings.db_path)
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_HOME = Path.home()


class Settings(BaseSettings):
    """Application settings loaded from environment.

    All settings have local defaults. Override via:
    - Environment variables (e.g., ORACLE_DB_PATH=...)
    - .env file in working directory

    Attributes:
        data_dir: Root directory for oracle data
        db_path: SQLite database holding documents and the FTS5 index
        chroma_data_dir: Persistent data directory passed to chroma-mcp
        chroma_collection: Chroma collection name
        chroma_command: Launcher used to spawn chroma-mcp
        chroma_python_version: Python version requested from the launcher
        semantic_timeout_seconds: Upper bound for the semantic search leg
        lexical_decay: Exponential decay constant for FTS5 rank normalization
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json or console)
    """

    model_config = SettingsConfigDict(
        env_prefix="ORACLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(
        default=_HOME / ".oracle",
        description="Root directory for oracle data",
    )
    db_path: Path = Field(
        default=_HOME / ".oracle" / "oracle.db",
        description="SQLite database path",
    )

    # Chroma (semantic leg)
    chroma_data_dir: Path = Field(
        default=_HOME / ".chromadb",
        description="chroma-mcp persistent data directory",
    )
    chroma_collection: str = Field(
        default="oracle_knowledge",
        description="Chroma collection name",
    )
    chroma_command: str = Field(
        default="uvx",
        description="Launcher command for chroma-mcp",
    )
    chroma_python_version: str = Field(
        default="3.12",
        description="Python version passed to the launcher",
    )
    chroma_handshake_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Spawn + MCP initialize timeout",
    )
    chroma_shutdown_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Graceful shutdown wait before force-terminating",
    )

    # Search
    semantic_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for the semantic search leg; covers a reconnect (handshake) plus the query",
    )
    lexical_decay: float = Field(
        default=0.3,
        gt=0,
        description="Decay constant for FTS5 rank normalization",
    )
    lexical_weight: float = Field(default=0.5, ge=0, le=1)
    semantic_weight: float = Field(default=0.5, ge=0, le=1)
    corroboration_boost: float = Field(
        default=1.1,
        ge=1.0,
        description="Multiplier for documents found by both legs",
    )
    content_preview_chars: int = Field(
        default=500,
        gt=0,
        description="Content is truncated to this length in results",
    )
    default_search_limit: int = Field(default=5, ge=1)
    max_search_limit: int = Field(default=100, ge=1)

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="console",
        description="Log format: json or console",
    )

    # API
    api_host: str = Field(
        default="127.0.0.1",
        description="FastAPI server host",
    )
    api_port: int = Field(
        default=47778,
        description="FastAPI server port",
    )

    # Telemetry
    enable_console_tracing: bool = Field(
        default=False,
        description="Export OpenTelemetry spans to stdout",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {"json", "console"}
        lower = v.lower()
        if lower not in valid_formats:
            raise ValueError(f"log_format must be one of {valid_formats}")
        return lower


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.
    Call get_settings.cache_clear() to reload.
    """
    return Settings()
