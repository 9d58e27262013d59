# app/api/v1/endpoints/admin.py

import logging
from typing import Any, Dict, Optional

import orjson
from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, Request, Response, UploadFile, status

from app.api.dependencies import get_resource_config, get_store
from app.core.resources import ResourceRegistry, get_registry
from app.core.store import SessionStore
from app.models.reports import BatchDeleteRequest, BatchUpdateRequest, ImportRequest
from app.models.resource import ResourceConfig
from app.services import export_service, import_service, resource_service
from app.services.query_builder import QueryRequest

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def json_response(data: Any, status_code: int = status.HTTP_200_OK) -> Response:
    """Serialize with orjson for faster responses"""
    return Response(
        content=orjson.dumps(data, default=str),
        media_type="application/json",
        status_code=status_code,
    )


def internal_error(action: str, error: Exception) -> HTTPException:
    logger.exception(f"Error {action}: {str(error)}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal Server Error")


def query_request(request: Request, page: Optional[str], limit: Optional[str], search: Optional[str],
                  sort: Optional[str], order: Optional[str]) -> QueryRequest:
    # Every query parameter is offered as a filter; only declared column keys are used
    return QueryRequest.from_params(
        page=page,
        limit=limit,
        search=search,
        sort=sort,
        order=order,
        filters=dict(request.query_params),
    )


@router.get("/resources")
async def list_resources(registry: ResourceRegistry = Depends(get_registry)):
    """Describe every configured resource for the admin navigation and forms"""
    return json_response({"resources": registry.summary()})


@router.get("/{resource}")
async def list_resource_rows(
        request: Request,
        page: Optional[str] = Query(None),
        limit: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        sort: Optional[str] = Query(None),
        order: Optional[str] = Query(None),
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    """
    Get paginated rows with search, per-column filters and sorting
    """
    try:
        params = query_request(request, page, limit, search, sort, order)
        return json_response(await resource_service.list_rows(store, config, params))
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"listing {config.key}", e)


@router.post("/{resource}")
async def create_resource_row(
        payload: Dict[str, Any] = Body(...),
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    try:
        row = await resource_service.create_row(store, config, payload)
        return json_response(row, status_code=status.HTTP_201_CREATED)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"creating {config.key} row", e)


@router.get("/{resource}/export")
async def export_resource_rows(
        request: Request,
        format: str = Query("csv", description="Export format: csv or xlsx"),
        search: Optional[str] = Query(None),
        sort: Optional[str] = Query(None),
        order: Optional[str] = Query(None),
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    """Export the full filtered dataset; page and limit are ignored"""
    try:
        params = QueryRequest.from_params(
            search=search,
            sort=sort,
            order=order,
            filters=dict(request.query_params),
        )
        export = await export_service.export_rows(store, config, params, format)
        return Response(content=export.content, media_type=export.media_type, headers=export.headers)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"exporting {config.key}", e)


@router.post("/{resource}/import")
async def import_resource_rows(
        body: ImportRequest,
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    """Import an array of rows; per-row failures are reported, not raised"""
    try:
        report = await import_service.import_rows(store, config, body.data)
        return json_response(report.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"importing into {config.key}", e)


@router.post("/{resource}/import/file")
async def import_resource_file(
        file: UploadFile = File(...),
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    """Import rows from an uploaded CSV or XLSX file"""
    try:
        resource_service.ensure_writable(config)
        content = await file.read()
        rows = import_service.rows_from_upload(config, file.filename, content)
        report = await import_service.import_rows(store, config, rows)
        return json_response(report.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"importing file into {config.key}", e)


@router.post("/{resource}/batch-update")
async def batch_update_rows(
        body: BatchUpdateRequest,
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    try:
        report = await resource_service.batch_update(store, config, body.ids, body.data)
        return json_response(report.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"batch updating {config.key}", e)


@router.post("/{resource}/batch-delete")
async def batch_delete_rows(
        body: BatchDeleteRequest,
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    try:
        report = await resource_service.batch_delete(store, config, body.ids)
        return json_response(report.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"batch deleting {config.key}", e)


@router.get("/{resource}/{row_id}")
async def get_resource_row(
        row_id: str,
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    try:
        return json_response(await resource_service.get_row(store, config, row_id))
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"getting {config.key}/{row_id}", e)


@router.put("/{resource}/{row_id}")
async def update_resource_row(
        row_id: str,
        payload: Dict[str, Any] = Body(...),
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    try:
        return json_response(await resource_service.update_row(store, config, row_id, payload))
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"updating {config.key}/{row_id}", e)


@router.delete("/{resource}/{row_id}")
async def delete_resource_row(
        row_id: str,
        config: ResourceConfig = Depends(get_resource_config),
        store: SessionStore = Depends(get_store),
):
    try:
        result = await resource_service.delete_row(store, config, row_id)
        return json_response(result)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(f"deleting {config.key}/{row_id}", e)
