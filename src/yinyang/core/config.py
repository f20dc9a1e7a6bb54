"""Configuration management for the Yinyang admin service.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the YINYANG_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (YINYANG_* prefix)
2. .env file in the project root
3. Default values defined in YinyangConfig

Example .env file:
    YINYANG_IMAGE_HOST=https://images.yinyang.computerpho.be
    YINYANG_DATA_DIR=data
    YINYANG_CHAIN_POLICY=maximal
    YINYANG_FETCH_WORKERS=8

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Route handlers and the CLI entry point read from it; library code takes a
``YinyangConfig`` argument so tests can pass their own.

Usage Example
-------------
    from yinyang.core.config import config

    print(config.image_host)
    print(config.database_path)

Image Host
----------
Generated images are published at ``<image_host>/<requestId>.<variant>.<ext>``.
A request whose input URL lives on this origin was derived from another
request's output; inputs from any other origin are treated as uploads.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class YinyangConfig(BaseSettings):
    """Main configuration for the Yinyang admin service.

    Attributes
    ----------
    Hosts:
        image_host : str
            Origin that serves generated images. Parent links are only
            resolved for input URLs on this origin.
        admin_api_host : str
            Public origin of this admin API, reported by ``/api/stats``.

    Storage:
        data_dir : Path
            Directory holding the SQLite database (created on init).
        database_path : Path | None
            SQLite file with the request records and the input-URL index.
            Defaults to ``data_dir / "yinyang.db"``.

    Chain Reconstruction:
        chain_policy : Literal["raw", "maximal"]
            ``raw`` returns one chain per record; ``maximal`` drops chains
            that are a prefix of a longer chain.
        fetch_workers : int
            Thread pool size used to fetch records for a pass.
        fetch_timeout : float
            Seconds to wait for the fetches of one pass before skipping
            the stragglers.

    Server:
        allowed_origins : list[str]
            Origins allowed by the CORS middleware.
        server_host : str
            Bind address for uvicorn.
        server_port : int
            Port for uvicorn (1024-65535).
        log_level : str
            Root log level applied by the CLI entry point.

    Examples
    --------
        >>> custom = YinyangConfig(data_dir="/tmp/yinyang", chain_policy="raw")
        >>> custom.database_path
        PosixPath('/tmp/yinyang/yinyang.db')
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="YINYANG_",
        case_sensitive=False,
    )

    # Hosts
    image_host: str = Field(
        default="https://images.yinyang.computerpho.be",
        description="Origin serving generated images",
    )
    admin_api_host: str = Field(
        default="https://api.admin.yinyang.computerpho.be",
        description="Public origin of the admin API",
    )

    # Storage
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the SQLite database",
    )
    database_path: Path | None = Field(
        default=None,
        description="SQLite database file (defaults to data_dir/yinyang.db)",
    )

    # Chain reconstruction
    chain_policy: Literal["raw", "maximal"] = Field(
        default="maximal",
        description="Chain output policy: every record's chain, or only maximal chains",
    )
    fetch_workers: int = Field(
        default=8,
        description="Threads used to fetch records during a reconstruction pass",
        ge=1,
        le=64,
    )
    fetch_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for a pass's record fetches",
        gt=0,
    )

    # Server
    allowed_origins: list[str] = Field(
        default_factory=list,
        description="Origins allowed to call the API (CORS)",
    )
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8787,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level for the CLI entry point",
    )

    @field_validator("image_host", "admin_api_host")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def __init__(self, **kwargs):
        """Initialize configuration and create the data directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        if self.database_path is None:
            self.database_path = self.data_dir / "yinyang.db"


# Global configuration instance
# Loads values from environment variables (YINYANG_* prefix) and .env file.
config = YinyangConfig()
