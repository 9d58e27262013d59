# app/services/query_builder.py
"""
Builds parameterized SQL for a configured resource.

Only identifiers held by the ResourceConfig are written into SQL text. Every
request value (search term, filter value, id, limit, offset, row data) travels
as a bound parameter.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.core.config import settings
from app.core.store import Statement, placeholder
from app.models.resource import Identifier, ResourceConfig

logger = logging.getLogger(__name__)

NON_SEARCHABLE_TYPES = ("boolean", "date", "datetime")
MAX_OFFSET = 2 ** 63 - 1  # largest value a BIGINT OFFSET parameter can carry


def parse_positive_int(value: Any, default: int) -> int:
    """Parse a request value as a positive integer, silently falling back to default"""
    if isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def coerce_id(row_id: Any) -> Any:
    """Bind numeric ids as integers, anything else as text"""
    if isinstance(row_id, int):
        return row_id
    try:
        return int(str(row_id).strip())
    except (TypeError, ValueError):
        return row_id


@dataclass
class QueryRequest:
    """Untrusted list/export parameters after page/limit normalization"""
    page: int = 1
    limit: Optional[int] = 10  # None: no pagination
    search: str = ""
    sort: Optional[str] = None
    order: str = "desc"
    filters: Dict[str, str] = field(default_factory=dict)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit if self.limit else 0

    @classmethod
    def from_params(
            cls,
            page: Any = None,
            limit: Any = None,
            search: Optional[str] = None,
            sort: Optional[str] = None,
            order: Optional[str] = None,
            filters: Optional[Mapping[str, Any]] = None,
            default_limit: Optional[int] = None,
            max_limit: Optional[int] = None,
    ) -> "QueryRequest":
        default_limit = default_limit or settings.DEFAULT_PAGE_SIZE
        max_limit = max_limit or settings.MAX_PAGE_SIZE

        if isinstance(limit, str) and limit.strip().lower() == "all":
            parsed_limit = None
        else:
            parsed_limit = min(parse_positive_int(limit, default_limit), max_limit)

        parsed_page = parse_positive_int(page, 1)
        if parsed_limit is not None:
            # Far-out pages are pulled back so OFFSET stays bindable; they still land past the end
            parsed_page = min(parsed_page, MAX_OFFSET // parsed_limit + 1)

        return cls(
            page=parsed_page,
            limit=parsed_limit,
            search=(search or "").strip(),
            sort=sort or None,
            order="asc" if (order or "").lower() == "asc" else "desc",
            filters={str(k): "" if v is None else str(v) for k, v in (filters or {}).items()},
        )


def page_meta(total: int, request: QueryRequest) -> Dict[str, int]:
    """Pagination metadata consistent with the count query"""
    if request.limit is None:
        return {
            "total": total,
            "page": 1,
            "limit": total,
            "totalPages": 1 if total > 0 else 0,
        }
    return {
        "total": total,
        "page": request.page,
        "limit": request.limit,
        "totalPages": math.ceil(total / request.limit) if total > 0 else 0,
    }


class QueryBuilder:
    """SQL composition for one resource on one SQL dialect"""

    def __init__(self, config: ResourceConfig, dialect: str = "postgresql"):
        self.config = config
        self.dialect = dialect
        self.like_operator = "ILIKE" if dialect == "postgresql" else "LIKE"
        self.table = config.table.quoted

    # --- predicates -----------------------------------------------------

    def _text_match(self, column: Identifier, position: int) -> str:
        return f"CAST({column.quoted} AS TEXT) {self.like_operator} {placeholder(position)}"

    def search_columns(self) -> List[Identifier]:
        """Display columns included in free-text search"""
        excluded = {self.config.primary_key.name, "id"}
        return [
            c.key for c in self.config.columns
            if c.key.name not in excluded
            and c.type not in NON_SEARCHABLE_TYPES
            and not c.key.name.endswith("_at")
        ]

    def where_clause(self, request: QueryRequest) -> Tuple[str, List[Any]]:
        """WHERE text plus its ordered parameters, shared by list, count and export"""
        conditions: List[str] = []
        values: List[Any] = []

        # Column names come from the configuration, values from the request
        for column in self.config.columns:
            value = request.filters.get(column.key.name)
            if not value:
                continue
            position = len(values) + 1
            if column.type == "boolean":
                conditions.append(f"{column.key.quoted} = {placeholder(position)}")
                values.append(value.strip().lower() == "true")
            elif column.matches_exactly:
                conditions.append(f"{column.key.quoted} = {placeholder(position)}")
                values.append(value)
            else:
                conditions.append(self._text_match(column.key, position))
                values.append(f"%{value}%")

        if request.search:
            columns = self.search_columns()
            if columns:
                # A single parameter is shared by every ORed column
                position = len(values) + 1
                conditions.append("(" + " OR ".join(self._text_match(c, position) for c in columns) + ")")
                values.append(f"%{request.search}%")

        if not conditions:
            return "", values
        return f" WHERE {' AND '.join(conditions)}", values

    def order_clause(self, request: QueryRequest) -> str:
        sortable = self.config.sortable_columns()
        column = sortable.get(request.sort or "", self.config.primary_key)
        if request.sort and request.sort not in sortable:
            logger.debug(f"Ignoring unknown sort column for {self.config.key}")
        direction = "ASC" if request.order == "asc" else "DESC"
        clause = f" ORDER BY {column.quoted} {direction}"
        if column != self.config.primary_key:
            # Tie-breaker keeps page boundaries stable
            clause += f", {self.config.primary_key.quoted} {direction}"
        return clause

    # --- reads ----------------------------------------------------------

    def list_statement(self, request: QueryRequest) -> Statement:
        where_sql, values = self.where_clause(request)
        sql = f"SELECT * FROM {self.table}{where_sql}{self.order_clause(request)}"
        if request.limit is not None:
            position = len(values) + 1
            sql += f" LIMIT {placeholder(position)} OFFSET {placeholder(position + 1)}"
            values = values + [request.limit, request.offset]
        return Statement(sql, values)

    def count_statement(self, request: QueryRequest) -> Statement:
        where_sql, values = self.where_clause(request)
        return Statement(f"SELECT COUNT(*) AS total FROM {self.table}{where_sql}", values)

    def export_statement(self, request: QueryRequest) -> Statement:
        where_sql, values = self.where_clause(request)
        return Statement(f"SELECT * FROM {self.table}{where_sql}{self.order_clause(request)}", values)

    def get_statement(self, row_id: Any) -> Statement:
        pk = self.config.primary_key.quoted
        return Statement(f"SELECT * FROM {self.table} WHERE {pk} = {placeholder(1)}", [coerce_id(row_id)])

    def exists_statement(self, column: Identifier, value: Any) -> Statement:
        return Statement(
            f"SELECT 1 FROM {self.table} WHERE {column.quoted} = {placeholder(1)} LIMIT 1",
            [value],
        )

    # --- writes ---------------------------------------------------------

    def insert_statement(self, values: Mapping[Identifier, Any], returning: bool = True) -> Statement:
        keys = list(values.keys())
        columns = ", ".join(k.quoted for k in keys)
        placeholders = ", ".join(placeholder(i) for i in range(1, len(keys) + 1))
        sql = f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})"
        if returning:
            sql += " RETURNING *"
        return Statement(sql, [values[k] for k in keys], write=True)

    def update_statement(self, row_id: Any, values: Mapping[Identifier, Any]) -> Statement:
        keys = list(values.keys())
        assignments = ", ".join(f"{k.quoted} = {placeholder(i)}" for i, k in enumerate(keys, start=1))
        pk = self.config.primary_key.quoted
        sql = f"UPDATE {self.table} SET {assignments} WHERE {pk} = {placeholder(len(keys) + 1)} RETURNING *"
        return Statement(sql, [values[k] for k in keys] + [coerce_id(row_id)], write=True)

    def delete_statement(self, row_id: Any) -> Statement:
        pk = self.config.primary_key.quoted
        return Statement(
            f"DELETE FROM {self.table} WHERE {pk} = {placeholder(1)} RETURNING {pk}",
            [coerce_id(row_id)],
            write=True,
        )
