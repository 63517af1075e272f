# app/api/v1/endpoints/video_reports.py
"""
Reporte administrativo del progreso de visualización.
Todas las rutas requieren un usuario administrador (JWT).
"""
from datetime import datetime, timezone
from typing import Iterator, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_admin
from app.core.exceptions import ProgressValidationError, StoreFailure, WatchRecordNotFound
from app.core.logging_config import get_progress_logger
from app.crud.crud_watch_record import WatchRecordFilters, watch_records
from app.db.session import get_db
from app.models.user import User
from app.models.watch_record import WatchRecord
from app.schemas.video_progress import (
    MessageResponse,
    WatchRecordList,
    WatchRecordResponse,
    WatchRecordUpdate,
)
from app.services import report_export_service as exports
from app.services.progress_service import ProgressService
from app.api.v1.endpoints.metrics import video_progress_store_failures_total

router = APIRouter()
logger = get_progress_logger('app.video_progress.reports')


def get_report_filters(
    search_user: Optional[str] = Query(None, description="Coincidencia parcial en username o email"),
    search_session: Optional[str] = Query(None, description="Coincidencia parcial en el nombre de la sesión"),
    filter_status: int = Query(-1, ge=-1, le=3, description="Estatus exacto; -1 = todos"),
) -> WatchRecordFilters:
    return WatchRecordFilters(
        user_like=(search_user or "").strip() or None,
        session_name_like=(search_session or "").strip() or None,
        status=filter_status,
    )


# ── Consulta ──

@router.get("", response_model=WatchRecordList, summary="Listar registros de progreso")
def list_records(
    filters: WatchRecordFilters = Depends(get_report_filters),
    limit: int = Query(settings.REPORT_RESULT_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    """Registros filtrados, del más reciente al más antiguo."""
    rows = watch_records.query(db, filters, limit=limit)
    items = [WatchRecordResponse.from_record(*row) for row in rows]
    return WatchRecordList(items=items, count=len(items), limit=limit)


# ── Exportación ──

def _close_after(rows: Iterator[str], db: Session) -> Iterator[str]:
    # La sesión sigue abierta mientras se transmite la respuesta
    try:
        yield from rows
    finally:
        db.close()


@router.get("/export/{fmt}", summary="Exportar el reporte (csv, xlsx o json)")
def export_records(
    fmt: Literal["csv", "xlsx", "json"],
    filters: WatchRecordFilters = Depends(get_report_filters),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    now = datetime.now(timezone.utc)
    filename = exports.export_filename(fmt, now)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    logger.info(
        f"Exportación solicitada: formato={fmt}, filtros={filters}",
        extra={"user_id": current_user.id},
    )

    rows = watch_records.iter_query(db, filters, batch_size=settings.EXPORT_BATCH_SIZE)
    if fmt == "xlsx":
        content = exports.build_xlsx(rows)
        return Response(content=content, media_type=exports.MEDIA_TYPES[fmt], headers=headers)

    if fmt == "csv":
        body = exports.iter_csv(rows)
    else:
        body = exports.iter_json(rows, watch_records.count(db, filters), export_date=now)
    return StreamingResponse(
        _close_after(body, db), media_type=exports.MEDIA_TYPES[fmt], headers=headers
    )


# ── Diagnóstico ──

@router.get("/debug-info", summary="Información de diagnóstico")
def debug_info(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    table_name = WatchRecord.__tablename__
    inspector = inspect(db.get_bind())
    info = {
        "version": settings.VERSION,
        "current_user_id": current_user.id,
        "table_name": table_name,
        "table_exists": inspector.has_table(table_name),
        "table_structure": [],
        "record_count": 0,
        "latest_records": [],
    }
    if info["table_exists"]:
        info["table_structure"] = [
            {"name": column["name"], "type": str(column["type"]), "nullable": column["nullable"]}
            for column in inspector.get_columns(table_name)
        ]
        info["record_count"] = watch_records.count(db)
        info["latest_records"] = [
            WatchRecordResponse.from_record(*row) for row in watch_records.latest(db, limit=5)
        ]
    return info


# ── Registro individual ──

@router.get("/{record_id}", response_model=WatchRecordResponse, summary="Obtener un registro")
def get_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    row = watch_records.get_report_row(db, record_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
    return WatchRecordResponse.from_record(*row)


@router.put("/{record_id}", response_model=WatchRecordResponse, summary="Editar un registro")
def update_record(
    record_id: int,
    payload: WatchRecordUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    """El estatus se recalcula a partir del porcentaje y la fecha de inscripción."""
    try:
        ProgressService().apply_admin_edit(
            db,
            record_id,
            percent=payload.percent,
            assessment_taken=payload.assessment_taken,
            current_duration=payload.current_duration,
            full_duration=payload.full_duration,
        )
    except WatchRecordNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
    except ProgressValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreFailure:
        video_progress_store_failures_total.labels(operation="update_record").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error while updating record"
        )

    logger.info(f"Registro {record_id} editado por {current_user.email}", extra={"record_id": record_id})
    return WatchRecordResponse.from_record(*watch_records.get_report_row(db, record_id))


@router.delete("/{record_id}", response_model=MessageResponse, summary="Eliminar un registro")
def delete_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin),
):
    try:
        ProgressService().delete_record(db, record_id)
    except WatchRecordNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
    except StoreFailure:
        video_progress_store_failures_total.labels(operation="delete_record").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error while deleting record"
        )

    logger.info(f"Registro {record_id} eliminado por {current_user.email}", extra={"record_id": record_id})
    return MessageResponse(message=f"Record {record_id} deleted")
