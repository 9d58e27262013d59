# app/services/export_service.py
import io
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List

import orjson
import pandas as pd

from app.core.exceptions import ValidationError
from app.core.store import SessionStore, jsonable_row
from app.models.resource import ResourceConfig
from app.services.query_builder import QueryBuilder, QueryRequest

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
SHEET_NAME = "Export"


@dataclass
class ExportFile:
    content: bytes
    filename: str
    media_type: str
    row_count: int

    @property
    def headers(self) -> Dict[str, str]:
        return {"Content-Disposition": f'attachment; filename="{self.filename}"'}


def export_columns(config: ResourceConfig, rows: List[Dict[str, Any]]) -> List[str]:
    """
    Primary key, then configured display columns, then anything else the table returned.

    The trailing extra columns are taken from the first row only; keys that appear
    only in later rows are not exported.
    """
    ordered = [config.primary_key.name] + [c.key.name for c in config.columns]
    seen = set()
    columns = []
    present = set(rows[0].keys()) if rows else set(ordered)
    for name in ordered:
        if name in present and name not in seen:
            columns.append(name)
            seen.add(name)
    for row in rows[:1]:
        for name in row.keys():
            if name not in seen:
                columns.append(name)
                seen.add(name)
    return columns


def build_dataframe(config: ResourceConfig, rows: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=export_columns(config, rows))
    # Dict/list values (json columns) are written as JSON text
    for column in df.columns:
        df[column] = df[column].map(
            lambda v: orjson.dumps(v).decode("utf-8") if isinstance(v, (dict, list)) else v
        )
    return df


def render(df: pd.DataFrame, fmt: str) -> bytes:
    buffer = io.BytesIO()
    if fmt == "xlsx":
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        return buffer.getvalue()
    # utf-8-sig so spreadsheet tools detect the encoding of Japanese text
    return df.to_csv(index=False).encode("utf-8-sig")


async def export_rows(store: SessionStore, config: ResourceConfig, request: QueryRequest,
                      fmt: str = "csv") -> ExportFile:
    """Run the unpaginated query once and serialize the whole result set"""
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Export format '{fmt}' is not supported")

    start_time = time.time()
    builder = QueryBuilder(config, store.dialect)
    result = await store.execute(builder.export_statement(request))
    rows = [jsonable_row(row) for row in result.rows]

    df = build_dataframe(config, rows)

    content = render(df, fmt)
    logger.info(f"Exported {len(rows)} rows of {config.key} as {fmt} in {time.time() - start_time:.2f}s")
    return ExportFile(
        content=content,
        filename=f"{config.key}_export_all.{fmt}",
        media_type=EXPORT_FORMATS[fmt],
        row_count=len(rows),
    )
