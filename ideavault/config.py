from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

DATA_DIR = Path(__file__).parent / "data"


def _env(name: str, default: str) -> str:
    return os.getenv(f"IDEAVAULT_{name}", "").strip() or default


class Settings(BaseModel):
    database_url: str = Field(default_factory=lambda: _env("DATABASE_URL", f"sqlite:///{DATA_DIR / 'ideavault.db'}"))
    host: str = Field(default_factory=lambda: _env("HOST", "127.0.0.1"))
    port: int = Field(default_factory=lambda: int(_env("PORT", "8002")))
    log_level: str = Field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())
    sql_echo: bool = Field(default_factory=lambda: _env("SQL_ECHO", "false").lower() in ("true", "1", "yes"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
