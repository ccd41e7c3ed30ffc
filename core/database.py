"""
core/database.py -- SQLAlchemy engine construction shared by the stores.

Both UserStore (auth/store.py) and CatalogStore (catalog/store.py) build
their engine here so the SQLite-specific connection tweaks live in one place.
Swapping SQLite for PostgreSQL is a DATABASE_URL change.

Layer rule: core/ is the kernel. No imports from api/, auth/, catalog/, or media/.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine for db_url.

    SQLite connections are shared across FastAPI's threadpool workers, so
    check_same_thread is disabled and WAL mode is switched on.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine
