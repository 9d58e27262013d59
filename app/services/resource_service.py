# app/services/resource_service.py
import logging
import os
import time
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping

from app.core.config import settings
from app.core.exceptions import AdminError, ReadOnlyResource, RowNotFound, ValidationError
from app.core.store import SessionStore, jsonable_row
from app.models.reports import BatchReport, BatchResult
from app.models.resource import Identifier, ResourceConfig
from app.services.query_builder import QueryBuilder, QueryRequest, page_meta

# Set up logging
logger = logging.getLogger(__name__)


def builder_for(store: SessionStore, config: ResourceConfig) -> QueryBuilder:
    return QueryBuilder(config, store.dialect)


def ensure_writable(config: ResourceConfig) -> None:
    """Reject writes against read-only resources (result tables, analytics views)"""
    if config.read_only:
        raise ReadOnlyResource(f"Resource '{config.key}' is read-only")


def project_payload(config: ResourceConfig, payload: Any) -> Dict[Identifier, Any]:
    """Keep only keys declared in the resource fields; everything else is dropped"""
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return {f.key: payload[f.key.name] for f in config.fields if f.key.name in payload}


async def list_rows(store: SessionStore, config: ResourceConfig, request: QueryRequest) -> Dict[str, Any]:
    """Paginated, filtered and sorted rows plus pagination metadata"""
    start_time = time.time()
    builder = builder_for(store, config)

    count_result = await store.execute(builder.count_statement(request))
    total = int(count_result.rows[0]["total"]) if count_result.rows else 0

    if request.limit is not None and request.offset >= total:
        data = []  # past the last page
    else:
        data_result = await store.execute(builder.list_statement(request))
        data = [jsonable_row(row) for row in data_result.rows]

    logger.info(
        f"{config.key}: returned {len(data)} rows out of {total} total in {time.time() - start_time:.3f}s"
    )
    return {"data": data, "meta": page_meta(total, request)}


async def get_row(store: SessionStore, config: ResourceConfig, row_id: Any) -> Dict[str, Any]:
    result = await store.execute(builder_for(store, config).get_statement(row_id))
    if not result.rows:
        raise RowNotFound()
    return jsonable_row(result.rows[0])


async def create_row(store: SessionStore, config: ResourceConfig, payload: Any) -> Dict[str, Any]:
    """Insert a row built from the allowed fields and return it as stored"""
    ensure_writable(config)
    values = project_payload(config, payload)
    if not values:
        raise ValidationError("No valid fields provided")

    result = await store.execute(builder_for(store, config).insert_statement(values))
    row = jsonable_row(result.rows[0]) if result.rows else {}
    log_data_change(config.key, "CREATE", row.get(config.primary_key.name))
    return row


async def update_row(store: SessionStore, config: ResourceConfig, row_id: Any, payload: Any) -> Dict[str, Any]:
    ensure_writable(config)
    values = project_payload(config, payload)
    if not values:
        raise ValidationError("No valid fields provided")

    result = await store.execute(builder_for(store, config).update_statement(row_id, values))
    if not result.rows:
        raise RowNotFound()
    log_data_change(config.key, "UPDATE", row_id)
    return jsonable_row(result.rows[0])


async def delete_row(store: SessionStore, config: ResourceConfig, row_id: Any) -> Dict[str, Any]:
    """Delete by primary key; a missing row is reported, not ignored"""
    ensure_writable(config)
    result = await store.execute(builder_for(store, config).delete_statement(row_id))
    if not result.rows:
        raise RowNotFound()
    log_data_change(config.key, "DELETE", row_id)
    return {"success": True, "id": row_id}


async def batch_update(store: SessionStore, config: ResourceConfig, ids: Iterable[Any],
                       payload: Any) -> BatchReport:
    """Apply the same field values to several rows, one independent update per id"""
    ensure_writable(config)
    ids = list(ids or [])
    if not ids:
        raise ValidationError("No ids provided")
    if not project_payload(config, payload):
        raise ValidationError("No valid fields provided")

    report = BatchReport()
    for row_id in ids:
        try:
            await update_row(store, config, row_id, payload)
            report.add(BatchResult(id=row_id, status="success", message="Updated"))
        except AdminError as e:
            logger.warning(f"Batch update of {config.key}/{row_id} failed: {e.message}")
            report.add(BatchResult(id=row_id, status="error", message=e.message))
    return report


async def batch_delete(store: SessionStore, config: ResourceConfig, ids: Iterable[Any]) -> BatchReport:
    ensure_writable(config)
    ids = list(ids or [])
    if not ids:
        raise ValidationError("No ids provided")

    report = BatchReport()
    for row_id in ids:
        try:
            await delete_row(store, config, row_id)
            report.add(BatchResult(id=row_id, status="success", message="Deleted"))
        except AdminError as e:
            logger.warning(f"Batch delete of {config.key}/{row_id} failed: {e.message}")
            report.add(BatchResult(id=row_id, status="error", message=e.message))
    return report


def log_data_change(resource_key: str, operation: str, row_id: Any) -> None:
    """Append write operations to a daily audit file"""
    if not settings.AUDIT_LOG_CHANGES:
        return
    try:
        log_dir = settings.get_logs_dir

        # Get the current date for the log file name
        current_date = datetime.utcnow().strftime("%Y%m%d")
        log_file = os.path.join(log_dir, f"data_changes_{current_date}.log")

        timestamp = datetime.utcnow().isoformat()
        log_entry = f"{timestamp} | {resource_key} | {operation} | {row_id}\n"

        with open(log_file, "a", encoding="utf-8") as f:
            f.write(log_entry)

    except Exception as e:
        logger.error(f"Error writing to change log file: {str(e)}")
