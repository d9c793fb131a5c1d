from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ideavault.models import Base

log = logging.getLogger(__name__)


class Database:
    """Engine plus session factory for one IdeaVault store.

    Built explicitly and handed to whatever needs storage (the FastAPI app,
    the MCP tools, tests); there is no module-level engine.
    """

    def __init__(self, url: str, *, echo: bool = False, engine: Engine | None = None):
        self.url = url
        if engine is None:
            engine = create_engine(url, echo=echo, **_engine_kwargs(url))
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def in_memory(cls) -> Database:
        """A private in-memory SQLite store; every connection shares it."""
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        db = cls("sqlite://", engine=engine)
        db.create_all()
        return db

    def create_all(self) -> None:
        url = make_url(self.url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        Base.metadata.create_all(self.engine)
        log.info("Database ready at %s", url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        self.engine.dispose()

    def get_session(self) -> Session:
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Context manager providing a transactional session scope.

        Usage (MCP server, scripts, etc.)::

            with database.session_scope() as session:
                ...
        """
        session = self.get_session()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def session_generator(self) -> Generator[Session, None, None]:
        """Generator-based session suitable for FastAPI ``Depends()``."""
        with self.session_scope() as session:
            yield session


def _engine_kwargs(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {}
