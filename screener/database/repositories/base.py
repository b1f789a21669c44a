"""
Base Repository - Session scoping shared by the screening repositories.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Generic, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from screener.database.database import DatabaseManager
from screener.database.models.company import Company
from screener.exceptions import PersistenceError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """
    Base class for the screener repositories.

    Repositories built without a manager bind to the process-wide
    ``database_manager`` at construction time.
    """

    def __init__(
        self, db_manager: Optional[DatabaseManager], model_class: type[ModelT]
    ):
        if db_manager is None:
            from screener.database.database import database_manager

            db_manager = database_manager

        self._db_manager = db_manager
        self._model_class = model_class

    @contextmanager
    def _get_session(self) -> Generator[Session, None, None]:
        """Read scope; callers commit explicitly when they write."""
        with self._db_manager.get_session() as session:
            yield session

    @contextmanager
    def _write(self, what: str) -> Generator[Session, None, None]:
        """
        Write scope committed on exit.

        Args:
            what: Short description used in the error message

        Raises:
            PersistenceError: If the database rejects the write
        """
        try:
            with self._db_manager.get_session() as session:
                yield session
                session.commit()
        except SQLAlchemyError as exc:
            msg = f"failed to {what}: {exc}"
            logger.error(msg)
            raise PersistenceError(msg) from exc

    @staticmethod
    def _company(session: Session, ticker: str) -> Optional[Company]:
        return session.execute(
            select(Company).where(Company.ticker == ticker)
        ).scalar_one_or_none()
