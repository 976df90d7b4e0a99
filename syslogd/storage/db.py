from __future__ import annotations

from typing import Tuple

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .models import Base


def init_engine_and_sessionmaker(database_url: str) -> Tuple[Engine, sessionmaker]:
    """Create the engine and sessionmaker for the node index and make sure its table exists.

    Node lookups run on conversion worker threads, so SQLite connections may not be pinned to a thread.
    """
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, future=True, connect_args=connect_args)
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return engine, session_factory
