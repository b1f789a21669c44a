"""
Index Repository - Index definitions, compositions and rebalance history.

Implements the ``IndexDefinitionSource`` and ``CompositionStore``
protocols.  Composition replacement and its change log are written in a
single transaction.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select

from screener.config import IndexConfig, parse_index_config
from screener.database.database import DatabaseManager
from screener.database.models.index import (
    SYSTEM_TICKER,
    IndexComposition,
    IndexDefinition,
    IndexHistoryLog,
)
from screener.database.repositories.base import BaseRepository
from screener.domain.models import (
    NO_CHANGE_ACTION,
    REBALANCE_ACTION,
    CompositionChange,
    CompositionRow,
    IndexDefinitionInfo,
)
from screener.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _as_uuid(index_id: str) -> uuid.UUID:
    return index_id if isinstance(index_id, uuid.UUID) else uuid.UUID(str(index_id))


class IndexRepository(BaseRepository[IndexDefinition]):
    """
    Repository for index definitions and their compositions.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        super().__init__(db_manager, IndexDefinition)

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def get_definition(self, key: str) -> Optional[IndexDefinitionInfo]:
        """
        Resolve an index by UUID or by ticker (case-insensitive).
        """
        try:
            definition_id: Optional[uuid.UUID] = _as_uuid(key)
        except ValueError:
            definition_id = None

        with self._get_session() as session:
            definition = (
                session.get(IndexDefinition, definition_id) if definition_id else None
            )
            if definition is None:
                definition = session.execute(
                    select(IndexDefinition).where(
                        func.upper(IndexDefinition.ticker) == key.upper()
                    )
                ).scalar_one_or_none()
            return self._definition_to_dto(definition) if definition else None

    def list_definitions(self, active_only: bool = True) -> List[IndexDefinitionInfo]:
        query = select(IndexDefinition).order_by(IndexDefinition.ticker)
        if active_only:
            query = query.where(IndexDefinition.is_active.is_(True))
        with self._get_session() as session:
            return [self._definition_to_dto(d) for d in session.execute(query).scalars()]

    def save_definition(
        self,
        ticker: str,
        name: str,
        config: Dict[str, Any],
        description: Optional[str] = None,
    ) -> IndexDefinitionInfo:
        """
        Create or update an index definition.

        The configuration document is validated before it is stored.

        Raises:
            ConfigurationError: If the document is invalid
        """
        parse_index_config(config)

        with self._write(f"save index {ticker}") as session:
            definition = session.execute(
                select(IndexDefinition).where(IndexDefinition.ticker == ticker)
            ).scalar_one_or_none()
            if definition is None:
                definition = IndexDefinition(ticker=ticker, name=name, config=config)
                session.add(definition)
            definition.name = name
            definition.config = config
            definition.description = description
            definition.is_active = True
            session.flush()
            saved = self._definition_to_dto(definition)
        return saved

    def load_config(self, key: str) -> IndexConfig:
        """
        Parse the stored configuration of an index.

        Raises:
            ConfigurationError: If the index is unknown or its document invalid
        """
        definition = self.get_definition(key)
        if definition is None:
            msg = f"index {key!r} not found"
            raise ConfigurationError(msg)
        return parse_index_config(definition.config)

    # ------------------------------------------------------------------
    # Compositions
    # ------------------------------------------------------------------

    def get_current(self, index_id: str) -> List[CompositionRow]:
        """Current composition rows, heaviest first."""
        query = (
            select(IndexComposition)
            .where(IndexComposition.index_id == _as_uuid(index_id))
            .order_by(IndexComposition.target_weight.desc(), IndexComposition.asset_ticker)
        )
        with self._get_session() as session:
            return [
                CompositionRow(
                    ticker=row.asset_ticker,
                    target_weight=row.target_weight,
                    entry_price=row.entry_price,
                    entry_date=row.entry_date,
                )
                for row in session.execute(query).scalars()
            ]

    def replace_composition(
        self,
        index_id: str,
        rows: Sequence[CompositionRow],
        changes: Sequence[CompositionChange],
        summary: Optional[str],
        run_date: date,
    ) -> None:
        """
        Replace all composition rows and append the change log atomically.

        Raises:
            PersistenceError: If the transaction fails; nothing is written
        """
        key = _as_uuid(index_id)
        with self._write(f"replace composition of index {index_id}") as session:
            session.execute(delete(IndexComposition).where(IndexComposition.index_id == key))
            session.add_all(
                IndexComposition(
                    index_id=key,
                    asset_ticker=row.ticker,
                    target_weight=row.target_weight,
                    entry_price=row.entry_price,
                    entry_date=row.entry_date or run_date,
                )
                for row in rows
            )
            if changes and summary:
                session.add(
                    IndexHistoryLog(
                        index_id=key,
                        log_date=run_date,
                        action=REBALANCE_ACTION,
                        ticker=SYSTEM_TICKER,
                        reason=summary,
                    )
                )
            session.add_all(
                IndexHistoryLog(
                    index_id=key,
                    log_date=run_date,
                    action=change.action.value,
                    ticker=change.ticker,
                    reason=change.reason,
                )
                for change in changes
            )

        logger.info(
            "Updated composition for index %s: %d assets, %d changes",
            index_id,
            len(rows),
            len(changes),
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def has_log_on(self, index_id: str, run_date: date, action: str) -> bool:
        query = (
            select(func.count())
            .select_from(IndexHistoryLog)
            .where(
                IndexHistoryLog.index_id == _as_uuid(index_id),
                IndexHistoryLog.log_date == run_date,
                IndexHistoryLog.action == action,
            )
        )
        with self._get_session() as session:
            return session.execute(query).scalar_one() > 0

    def has_log_today(self, index_id: str, action: str = NO_CHANGE_ACTION) -> bool:
        return self.has_log_on(index_id, date.today(), action)

    def append_log(
        self, index_id: str, action: str, reason: str, run_date: date
    ) -> None:
        """Append a run-level log entry."""
        with self._write(f"append log for index {index_id}") as session:
            session.add(
                IndexHistoryLog(
                    index_id=_as_uuid(index_id),
                    log_date=run_date,
                    action=action,
                    ticker=SYSTEM_TICKER,
                    reason=reason,
                )
            )

    def get_history(self, index_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Most recent log entries, newest first."""
        query = (
            select(IndexHistoryLog)
            .where(IndexHistoryLog.index_id == _as_uuid(index_id))
            .order_by(IndexHistoryLog.log_date.desc(), IndexHistoryLog.created_at.desc())
            .limit(limit)
        )
        with self._get_session() as session:
            return [
                {
                    "date": log.log_date,
                    "action": log.action,
                    "ticker": log.ticker,
                    "reason": log.reason,
                }
                for log in session.execute(query).scalars()
            ]

    def _definition_to_dto(self, definition: IndexDefinition) -> IndexDefinitionInfo:
        """Convert IndexDefinition ORM model to IndexDefinitionInfo."""
        return IndexDefinitionInfo(
            id=str(definition.id),
            ticker=definition.ticker,
            name=definition.name,
            config=dict(definition.config or {}),
            description=definition.description,
            is_active=definition.is_active,
        )
