# app/api/v1/endpoints/video_progress.py
"""
Registro del progreso de visualización enviado por el reproductor.
El usuario se toma siempre del token, nunca del cuerpo de la petición.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_user
from app.core.exceptions import ProgressValidationError, StoreFailure
from app.core.logging_config import get_progress_logger
from app.crud.crud_watch_record import watch_records
from app.db.session import get_db
from app.models.user import User
from app.schemas.video_progress import (
    ProgressSampleRequest,
    ProgressSampleResponse,
    WatchRecordResponse,
)
from app.services.content_service import ContentService, get_content_service
from app.services.progress_reconciler import ProgressSample, ReconcileAction
from app.services.progress_service import ProgressService
from app.utils.video_identity import resolve_video_id
from app.api.v1.endpoints.metrics import (
    video_progress_samples_total,
    video_progress_store_failures_total,
)

router = APIRouter()
logger = get_progress_logger('app.video_progress.api')

MESSAGES = {
    ReconcileAction.INSERT: "Progress saved",
    ReconcileAction.UPDATE: "Progress saved",
    ReconcileAction.STALE: "Stored progress is ahead; sample ignored",
}


@router.post(
    "",
    response_model=ProgressSampleResponse,
    summary="Registrar progreso de video",
    description="Registra una muestra de progreso para el usuario autenticado. "
                "Las muestras que retroceden el progreso se ignoran sin error."
)
def save_progress(
    request: ProgressSampleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    content: ContentService = Depends(get_content_service),
):
    """
    - **video_id**: ID explícito; si falta se deriva de **video_src** o de **position**
    - **percent**: porcentaje visto (se trunca y recorta a 0-100)
    - **session_id** / **session_name**: sesión o curso al que pertenece el video
    """
    video_id = resolve_video_id(request.video_id, request.video_src, request.position)
    if not video_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: video_id"
        )

    sample = ProgressSample(
        video_id=video_id,
        session_id=request.session_id or "",
        session_name=request.session_name or "",
        percent=request.percent,
        current_duration=request.current_duration,
        full_duration=request.full_duration,
        source=request.source,
    )

    service = ProgressService(content=content)
    try:
        result = service.record_sample(db, current_user.id, sample)
    except ProgressValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreFailure:
        video_progress_store_failures_total.labels(operation="record_sample").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error while saving progress"
        )

    video_progress_samples_total.labels(action=result.action.value).inc()
    return ProgressSampleResponse(
        success=True,
        action=result.action.value,
        video_id=video_id,
        percent=result.percent,
        status=int(result.status),
        status_label=result.status.label,
        message=MESSAGES[result.action],
    )


@router.get(
    "/mine",
    response_model=List[WatchRecordResponse],
    summary="Progreso del usuario actual"
)
def my_progress(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    records = watch_records.list_for_user(db, current_user.id, limit=settings.REPORT_RESULT_LIMIT)
    return [
        WatchRecordResponse.from_record(record, current_user.username, current_user.email)
        for record in records
    ]
