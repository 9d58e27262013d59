# app/services/import_service.py
"""
Bulk import of externally supplied rows (JSON payloads or uploaded CSV/XLSX files).

Rows are processed one after another and independently: a failing row is recorded
in the report and never rolls back or stops its neighbours.
"""
import io
import logging
import time
from typing import Any, Dict, List, Mapping, Optional

import orjson
import pandas as pd

from app.core.config import settings
from app.core.exceptions import RowImportError, StoreError, ValidationError
from app.core.store import SessionStore
from app.models.reports import ImportReport, ImportResult
from app.models.resource import FieldSpec, Identifier, ResourceConfig
from app.services.query_builder import QueryBuilder
from app.services.resource_service import ensure_writable, log_data_change

logger = logging.getLogger(__name__)

TRUE_LITERALS = ("true", "1")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def coerce_value(field: FieldSpec, value: Any) -> Any:
    """Convert spreadsheet/text values into what the column expects"""
    if field.type == "json":
        if value is None or isinstance(value, (dict, list)):
            return value
        try:
            return orjson.loads(str(value))
        except (orjson.JSONDecodeError, TypeError, ValueError):
            return {}

    if field.type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value == 1
        return str(value).strip().lower() in TRUE_LITERALS

    if field.type == "number" and isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return value  # the store reports the mismatch for this row

    return value


class RowImporter:
    """Runs the per-row validate / dedup / coerce / insert sequence for one resource"""

    def __init__(self, store: SessionStore, config: ResourceConfig):
        self.store = store
        self.config = config
        self.builder = QueryBuilder(config, store.dialect)

    def missing_required(self, row: Mapping[str, Any]) -> List[str]:
        return [f.label for f in self.config.fields if f.required and is_blank(row.get(f.key.name))]

    async def is_duplicate(self, row: Mapping[str, Any]) -> bool:
        unique_key = self.config.unique_key
        if unique_key is None or not row.get(unique_key.name):
            return False
        result = await self.store.execute(self.builder.exists_statement(unique_key, row[unique_key.name]))
        return result.row_count > 0

    def prepare(self, row: Mapping[str, Any]) -> Dict[Identifier, Any]:
        # Sparse: optional fields missing from the row are left to column defaults
        return {f.key: coerce_value(f, row[f.key.name]) for f in self.config.fields if f.key.name in row}

    async def import_row(self, row_number: int, row: Any) -> ImportResult:
        if not isinstance(row, Mapping):
            return ImportResult(row=row_number, status="error", message="Row must be an object")
        echoed = dict(row)

        try:
            missing = self.missing_required(row)
            if missing:
                raise RowImportError(f"Missing required fields: {', '.join(missing)}")

            if await self.is_duplicate(row):
                unique_key = self.config.unique_key.name
                return ImportResult(
                    row=row_number,
                    status="skipped",
                    message=f'Duplicate {unique_key}: "{row[unique_key]}"',
                    data=echoed,
                )

            values = self.prepare(row)
            if not values:
                raise RowImportError("No valid fields provided")

            result = await self.store.execute(self.builder.insert_statement(values))
            row_id = result.rows[0].get(self.config.primary_key.name) if result.rows else None
            log_data_change(self.config.key, "IMPORT", row_id)
            return ImportResult(row=row_number, status="success", message="Imported successfully", data=echoed)

        except RowImportError as e:
            return ImportResult(row=row_number, status="error", message=e.message, data=echoed)
        except StoreError as e:
            logger.warning(f"Row {row_number} of {self.config.key} import rejected: {e.driver_message}")
            return ImportResult(row=row_number, status="error", message=e.driver_message, data=echoed)
        except Exception as e:
            logger.exception(f"Row {row_number} of {self.config.key} import failed")
            return ImportResult(row=row_number, status="error", message=str(e) or "Database error", data=echoed)


async def import_rows(store: SessionStore, config: ResourceConfig, rows: Any,
                      max_rows: Optional[int] = None) -> ImportReport:
    """Validate, deduplicate and insert rows, returning one outcome per input row"""
    ensure_writable(config)
    if not isinstance(rows, list) or len(rows) == 0:
        raise ValidationError("No data provided")

    max_rows = max_rows or settings.IMPORT_MAX_ROWS
    if len(rows) > max_rows:
        raise ValidationError(f"Too many rows: {len(rows)} (maximum {max_rows} per import)")

    start_time = time.time()
    importer = RowImporter(store, config)
    report = ImportReport()

    for index, row in enumerate(rows):
        report.add(await importer.import_row(index + 1, row))

    logger.info(
        f"Import into {config.key}: {report.success} imported, {report.skipped} skipped, "
        f"{report.failed} failed in {time.time() - start_time:.2f}s"
    )
    return report


def _cell_value(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return value
    if pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        return value.item()  # numpy scalar
    return value


def rows_from_upload(config: ResourceConfig, filename: str, content: bytes) -> List[Dict[str, Any]]:
    """Read an uploaded CSV or XLSX file into import rows keyed by field key"""
    name = (filename or "").lower()
    try:
        if name.endswith(".csv"):
            df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
        elif name.endswith(".xlsx"):
            df = pd.read_excel(io.BytesIO(content), dtype=object, engine="openpyxl")
        else:
            raise ValidationError("Unsupported file type, upload a .csv or .xlsx file")
    except ValidationError:
        raise
    except Exception as e:
        logger.error(f"Could not read uploaded file {filename}: {str(e)}")
        raise ValidationError(f"Could not read file: {str(e)}")

    # Headers may use field keys or the labels shown in the admin
    by_label = {f.label.strip().lower(): f.key.name for f in config.fields}
    renamed = {}
    for header in df.columns:
        text = str(header).strip()
        renamed[header] = by_label.get(text.lower(), text)
    df = df.rename(columns=renamed)

    rows = []
    for record in df.to_dict(orient="records"):
        row = {}
        for key, value in record.items():
            value = _cell_value(value)
            if is_blank(value):
                continue  # empty cells are treated as absent
            row[str(key)] = value
        rows.append(row)

    logger.info(f"Parsed {len(rows)} rows from {filename}")
    return rows
