from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import Settings, get_settings


@lru_cache(maxsize=8)
def _engine_for(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # FastAPI runs sync dependencies on a threadpool.
        connect_args["check_same_thread"] = False
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def get_engine(settings: Settings | None = None) -> Engine:
    settings = settings or get_settings()
    return _engine_for(settings.database_url)


def init_db(settings: Settings | None = None) -> None:
    from app.db.models import Base

    Base.metadata.create_all(get_engine(settings))


def get_db(request: Request) -> Generator[Session, None, None]:
    # Settings passed to create_app() win over the process-wide ones.
    settings = getattr(request.app.state, "settings", None)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(settings))
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
