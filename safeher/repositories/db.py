"""
Database engine helpers.
"""

from pathlib import Path
from typing import Optional

from sqlmodel import SQLModel, create_engine

from ..core.config import settings

DB_URL = settings.database_url

_ENGINE = None


def get_engine():
    global _ENGINE
    if _ENGINE is None:
        connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
        if DB_URL.startswith("sqlite:///"):
            db_path = DB_URL.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        _ENGINE = create_engine(DB_URL, echo=False, connect_args=connect_args)
    return _ENGINE


def configure(url: Optional[str] = None) -> None:
    """Drop the cached engine, optionally pointing the next one at another URL."""
    global _ENGINE, DB_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    if url:
        DB_URL = url


def init_db() -> None:
    engine = get_engine()
    from . import db_models  # noqa: F401
    SQLModel.metadata.create_all(engine)
