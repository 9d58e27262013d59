# app/core/store.py
"""
Thin adapter exposing the database as a single execute(statement) primitive.

Statements carry SQL text with positional placeholders (:p1, :p2, ...) and an
ordered parameter list. Write statements are committed one at a time, so every
write is its own unit of work.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Sequence

import orjson
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreError

logger = logging.getLogger(__name__)


def placeholder(position: int) -> str:
    """Placeholder text for the 1-based parameter position"""
    return f":p{position}"


@dataclass(frozen=True)
class Statement:
    sql: str
    params: Sequence[Any] = ()
    write: bool = False

    def bind_params(self) -> Dict[str, Any]:
        return {f"p{i}": _bindable(value) for i, value in enumerate(self.params, start=1)}


@dataclass
class StoreResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


def _bindable(value: Any) -> Any:
    # Structured values go to json/jsonb columns as text
    if isinstance(value, (dict, list)):
        return orjson.dumps(value).decode("utf-8")
    return value


def driver_message(error: Exception) -> str:
    """Best human-readable message from a SQLAlchemy error"""
    orig = getattr(error, "orig", None)
    return str(orig) if orig is not None else str(error)


def jsonable_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a result row into JSON/CSV friendly values"""
    row_dict = {}
    for key, value in row.items():
        if isinstance(value, (datetime, date)):
            row_dict[str(key)] = value.isoformat()
        elif isinstance(value, Decimal):
            row_dict[str(key)] = str(value)
        else:
            row_dict[str(key)] = value
    return row_dict


class SessionStore:
    """Store backed by an AsyncSession from the request scope"""

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def dialect(self) -> str:
        bind = self.session.bind
        return bind.dialect.name if bind is not None else "postgresql"

    async def execute(self, statement: Statement) -> StoreResult:
        try:
            result = await self.session.execute(text(statement.sql), statement.bind_params())
            if result.returns_rows:
                rows = [dict(row._mapping) for row in result.fetchall()]
                row_count = len(rows)
            else:
                rows = []
                row_count = result.rowcount
            if statement.write:
                await self.session.commit()
            return StoreResult(rows=rows, row_count=row_count)
        except SQLAlchemyError as e:
            await self.session.rollback()
            message = driver_message(e)
            logger.error(f"Statement failed: {message}")
            logger.debug(f"Failed SQL: {statement.sql}")
            raise StoreError(message) from e
