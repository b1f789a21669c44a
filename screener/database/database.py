"""
Database access for the screening pipeline.

One ``DatabaseManager`` owns the engine and session factory for a single
database URL. PostgreSQL (psycopg2) is the production target; SQLite is
accepted for local runs, dry runs and tests.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional

from rich.console import Console
from sqlalchemy import Engine, create_engine, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, QueuePool, StaticPool

from screener.database.config import Settings, settings as default_settings
from screener.database.models.base import Base

logger = logging.getLogger(__name__)

console = Console()

# Supabase-style transaction pooler; pooling happens outside the process
_EXTERNAL_POOLER_PORT = 6543


class DatabaseManager:
    """
    Engine and session owner for one database URL.

    ``initialize`` is idempotent and thread-safe. Sessions are handed out
    through ``get_session``, which rolls back on any error and always
    closes the session.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or default_settings
        self._url = make_url(database_url or self._settings.database_url)
        self._engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None
        self._lock = threading.RLock()

    @property
    def url(self) -> str:
        return self._url.render_as_string(hide_password=False)

    @property
    def is_sqlite(self) -> bool:
        return self._url.get_backend_name() == "sqlite"

    @property
    def is_initialized(self) -> bool:
        return self._sessions is not None

    @property
    def engine(self) -> Optional[Engine]:
        return self._engine

    def initialize(self, verbose: bool = False) -> None:
        """
        Create the engine and session factory, then ping the database.

        Args:
            verbose: If True, print the pool class in use
        """
        with self._lock:
            if self.is_initialized:
                return

            pool_class = self._pool_class()
            engine: Optional[Engine] = None
            try:
                engine = create_engine(
                    self._url,
                    poolclass=pool_class,
                    echo=self._settings.database_echo,
                    connect_args=self._connect_args(),
                    **self._pool_options(pool_class),
                )
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1")).scalar_one()
            except Exception as e:
                console.print(f"[red]Database initialization failed:[/red] {e}")
                if engine is not None:
                    engine.dispose()
                raise

            self._engine = engine
            self._sessions = sessionmaker(
                bind=engine, autoflush=False, expire_on_commit=False
            )
            logger.info(
                "Connected to %s database (%s)",
                self._url.get_backend_name(),
                pool_class.__name__,
            )
            if verbose:
                console.print(f"[dim]Pool:[/dim] {pool_class.__name__}")

    def _pool_class(self) -> type:
        """
        StaticPool for in-memory SQLite so every session sees one database,
        NullPool for file SQLite and external poolers, QueuePool otherwise.
        """
        if self.is_sqlite:
            if self._url.database in (None, "", ":memory:"):
                return StaticPool
            return NullPool
        if self._url.port == _EXTERNAL_POOLER_PORT:
            return NullPool
        return QueuePool

    def _pool_options(self, pool_class: type) -> Dict[str, Any]:
        if pool_class is not QueuePool:
            return {}
        return {
            "pool_size": self._settings.database_pool_size,
            "max_overflow": self._settings.database_max_overflow,
            "pool_timeout": self._settings.database_pool_timeout,
            "pool_recycle": self._settings.database_pool_recycle,
            "pool_pre_ping": self._settings.database_pool_pre_ping,
        }

    def _connect_args(self) -> Dict[str, Any]:
        if self.is_sqlite:
            return {"check_same_thread": False}

        host = self._url.host or ""
        args: Dict[str, Any] = {
            "application_name": "index-screener",
            "connect_timeout": 10,
            "sslmode": "disable" if host in ("localhost", "127.0.0.1") else "require",
        }
        if self._settings.database_command_timeout:
            timeout_ms = self._settings.database_command_timeout * 1000
            args["options"] = f"-c statement_timeout={timeout_ms}"
        return args

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Yield a session; roll back on error and always close.

        Raises:
            RuntimeError: If ``initialize`` has not been called
        """
        if self._sessions is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self._sessions()
        try:
            yield session
        except (DisconnectionError, OperationalError):
            session.rollback()
            session.invalidate()
            raise
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all_tables(self) -> None:
        """Create the screener tables that do not exist yet."""
        if self._engine is None:
            raise RuntimeError("Database engine not initialized")
        Base.metadata.create_all(bind=self._engine)

    def existing_tables(self) -> List[str]:
        """Screener tables present in the database, sorted by name."""
        if self._engine is None:
            return []
        present = set(inspect(self._engine).get_table_names())
        return sorted(name for name in Base.metadata.tables if name in present)

    def close(self) -> None:
        """Dispose of the engine; safe to call more than once."""
        with self._lock:
            self._dispose()

    def _dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessions = None


# Process-wide manager bound to ``Settings.database_url``
database_manager = DatabaseManager()


__all__ = [
    "database_manager",
    "DatabaseManager",
]
