import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import get_settings

logger = logging.getLogger(__name__)


def create_db_engine(url: str, **kwargs) -> Engine:
    """Engine for ``url``.

    SQLite connections always enforce foreign keys; file databases also switch
    to WAL. Extra keyword arguments go to ``create_engine`` (tests pass a
    ``StaticPool`` for a shared in-memory database).
    """
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    eng = create_engine(url, **kwargs)
    if not is_sqlite:
        return eng

    on_disk = eng.url.database not in (None, "", ":memory:")

    @event.listens_for(eng, "connect")
    def _sqlite_pragmas(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        if on_disk:
            cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()

    return eng


engine = create_db_engine(get_settings().database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def init_db(bind: Engine = engine) -> None:
    """Create missing tables; schema changes go through Alembic."""
    import models  # noqa: F401

    Base.metadata.create_all(bind)
    logger.info(f"database_ready: url={bind.url.render_as_string(hide_password=True)}")
