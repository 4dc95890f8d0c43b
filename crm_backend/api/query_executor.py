"""
Query Executor: runs vetted SQL against the live CRM database.

Purpose
-------
- Owns one lazily created SQLAlchemy ``AsyncEngine`` for the CRM database,
  reused by every request after the first.
- Sends the statement text verbatim to the driver (no bind-parameter parsing),
  so literals such as ``'%alexis%'`` or ``:`` inside strings reach PostgreSQL
  untouched.
- Returns rows as JSON-compatible dicts (dates as ISO strings, decimals as floats).

Notes
-----
- The engine is created the first time ``execute`` runs. Two requests racing on
  that first call may each build an engine; the loser's engine is left to the
  garbage collector. No lock is taken.
- A blank statement raises ``ValueError``; database errors propagate to the caller.
"""

import logging
from typing import Any, List, Optional, Union

from fastapi.encoders import jsonable_encoder
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from crm_backend.database.config.connection_engine import crm_connection_url

logger = logging.getLogger(__name__)


class CrmQueryExecutor:
    """
    Executes read-only statements on the CRM database.

    Args:
        url (str | URL | None): Connection URL; defaults to the ``CRM_DB_*`` settings.
    """

    def __init__(self, url: Optional[Union[str, URL]] = None):
        self.url = url
        self._engine: Optional[AsyncEngine] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(self.url or crm_connection_url(), pool_pre_ping=True)
            logger.info("Created CRM database engine")
        return self._engine

    async def execute(self, sql: str) -> List[dict[str, Any]]:
        """
        Run one statement.

        Args:
            sql (str): Statement accepted by the guard.

        Returns:
            list[dict]: One JSON-compatible dict per row; empty when the
            statement returns no rows.

        Raises:
            ValueError: If the statement is blank (no SQL was extracted).
            sqlalchemy.exc.DBAPIError: On any database error.
        """
        if not sql.strip():
            raise ValueError("No SQL statement to execute")

        async with self.engine.connect() as connection:
            result = await connection.exec_driver_sql(sql, execution_options={"no_parameters": True})
            if not result.returns_rows:
                return []
            rows = [dict(row) for row in result.mappings().all()]
        return jsonable_encoder(rows)

    async def dispose(self) -> None:
        """Close the pool, if it was ever opened."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
