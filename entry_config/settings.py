"""
Engine settings from the environment.

    DATABASE_URL         SQLAlchemy URL (default: sqlite:///entries.db)
    ENTRY_SQL_ECHO       "1"/"true" to log SQL
    ENTRY_DB_POOL_SIZE   PostgreSQL pool size (default 20)
    ENTRY_CONFIG_SET     document-type set name (default: manufacturing)
"""

import os
from dataclasses import dataclass
from typing import Mapping

_DEFAULT_DATABASE_URL = "sqlite:///entries.db"


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EngineSettings:
    database_url: str = _DEFAULT_DATABASE_URL
    echo: bool = False
    pool_size: int = 20
    config_set: str = "manufacturing"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("DATABASE_URL", _DEFAULT_DATABASE_URL),
            echo=_flag(env.get("ENTRY_SQL_ECHO")),
            pool_size=int(env.get("ENTRY_DB_POOL_SIZE", "20")),
            config_set=env.get("ENTRY_CONFIG_SET", "manufacturing"),
        )
