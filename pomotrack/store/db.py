"""Database connection and session management."""

from pathlib import Path
from contextlib import contextmanager

from platformdirs import user_data_dir
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import sessionmaker, Session as OrmSession
from sqlalchemy.pool import StaticPool

from .models import Base

# ── paths ────────────────────────────────────────────────────────────────────

APP_DATA_DIR = Path(user_data_dir("PomoTrack", appauthor=False))
DB_PATH = APP_DATA_DIR / "pomotrack.db"

# ── engine & session factory (created lazily) ─────────────────────────────

_engine = None
_SessionFactory = None

# Execution option naming the SQLite BEGIN mode, e.g. "IMMEDIATE".
SQLITE_BEGIN = "sqlite_begin"


def _get_engine():
    global _engine
    if _engine is None:
        APP_DATA_DIR.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(
            f"sqlite:///{DB_PATH}",
            connect_args={"check_same_thread": False},
            echo=False,
        )
        _install_sqlite_begin(_engine)
    return _engine


def _get_session_factory():
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=_get_engine(), expire_on_commit=False)
    return _SessionFactory


def _install_sqlite_begin(engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so writers can ask for IMMEDIATE.

    pysqlite defers BEGIN until the first write, which leaves the reads of
    a read-compute-write unprotected against other processes.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        mode = conn.get_execution_options().get(SQLITE_BEGIN)
        conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")


# ── public API ────────────────────────────────────────────────────────────


def configure_engine(url: str) -> None:
    """Override the database connection URL.  Used by tests to point at
    an in-memory SQLite database, and by the CLI's ``--db`` option."""
    global _engine, _SessionFactory
    _SessionFactory = None
    kwargs = {}
    if url.startswith("sqlite") and ":memory:" in url:
        # One shared connection, otherwise every session sees an empty db.
        kwargs["poolclass"] = StaticPool
    _engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        echo=False,
        **kwargs,
    )
    _install_sqlite_begin(_engine)


def _run_migrations(engine) -> None:
    """Schema and data migrations for existing databases.

    Each migration is idempotent and safe to run repeatedly.
    """
    insp = inspect(engine)
    table_names = set(insp.get_table_names())

    with engine.connect() as conn:
        # ── M1: phase names were stored upper-case ("FOCUS") ───────────
        if "preferences" in table_names:
            conn.execute(text(
                "UPDATE preferences SET value = lower(value) "
                "WHERE key IN ('current_state', 'paused_from') "
                "AND value != lower(value)"
            ))

        conn.commit()


def init_db() -> None:
    """Create all tables and run migrations."""
    engine = _get_engine()
    Base.metadata.create_all(engine)
    _run_migrations(engine)


@contextmanager
def get_session(immediate: bool = False):
    """Yield a SQLAlchemy session; commit on success, rollback on error.

    With ``immediate`` the transaction takes SQLite's write lock before its
    first read, so no other connection can commit until this one finishes.
    """
    factory = _get_session_factory()
    session: OrmSession = factory()
    try:
        if immediate:
            session.connection(execution_options={SQLITE_BEGIN: "IMMEDIATE"})
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
