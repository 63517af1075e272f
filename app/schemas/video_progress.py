# app/schemas/video_progress.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Literal, Optional

from app.services.progress_reconciler import status_label
from app.utils.video_identity import DURATION_PATTERN


class ProgressSampleRequest(BaseModel):
    """Schema para una muestra de progreso enviada por el reproductor."""
    video_id: Optional[str] = Field(None, max_length=255, description="ID explícito del video")
    video_src: Optional[str] = Field(None, max_length=2048, description="URL del video para derivar el ID si no hay ID explícito")
    position: Optional[int] = Field(None, ge=0, description="Posición del elemento en la página (último recurso)")
    percent: float = Field(..., allow_inf_nan=False, description="Porcentaje visto; fuera de [0, 100] se recorta")
    full_duration: str = Field("00:00:00", pattern=DURATION_PATTERN, description="Duración total HH:MM:SS")
    current_duration: str = Field("00:00:00", pattern=DURATION_PATTERN, description="Posición actual HH:MM:SS")
    session_id: Optional[str] = Field(None, max_length=255, description="ID de la sesión o curso")
    session_name: Optional[str] = Field(None, max_length=255, description="Nombre de la sesión o curso")
    source: Literal["main", "iframe", "external"] = Field("main", description="Origen del reporte (solo diagnóstico)")

    class Config:
        json_schema_extra = {
            "example": {
                "video_id": "intro-seguridad",
                "percent": 45,
                "full_duration": "00:10:00",
                "current_duration": "00:04:30",
                "session_id": "12",
                "session_name": "Inducción de seguridad",
                "source": "main"
            }
        }


class ProgressSampleResponse(BaseModel):
    """Schema para la respuesta del registro de progreso."""
    success: bool
    action: Literal["insert", "update", "stale"]
    video_id: str
    percent: int = Field(..., description="Porcentaje calculado para la muestra")
    status: int
    status_label: str
    message: str

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "action": "update",
                "video_id": "intro-seguridad",
                "percent": 45,
                "status": 1,
                "status_label": "In Progress",
                "message": "Progress saved"
            }
        }


class WatchRecordResponse(BaseModel):
    """Registro de progreso con los datos del usuario (vista del administrador)."""
    id: int
    user_id: int
    user_login: Optional[str] = None
    user_email: Optional[str] = None
    video_id: str
    session_id: str
    session_name: Optional[str] = None
    percent: int
    assessment_taken: bool
    status: int
    status_label: str
    current_duration: str
    full_duration: str
    last_watched: Optional[datetime] = None
    enrolment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_record(cls, record, user_login: Optional[str] = None, user_email: Optional[str] = None):
        return cls(
            id=record.id,
            user_id=record.user_id,
            user_login=user_login,
            user_email=user_email,
            video_id=record.video_id,
            session_id=record.session_id,
            session_name=record.session_name,
            percent=record.percent,
            assessment_taken=bool(record.assessment_taken),
            status=record.status,
            status_label=status_label(record.status),
            current_duration=record.current_duration,
            full_duration=record.full_duration,
            last_watched=record.last_watched,
            enrolment_date=record.enrolment_date,
            created_at=record.created_at,
        )


class WatchRecordList(BaseModel):
    items: List[WatchRecordResponse]
    count: int
    limit: int


class WatchRecordUpdate(BaseModel):
    """Edición administrativa; el estatus se recalcula, no se envía."""
    percent: float = Field(..., allow_inf_nan=False)
    assessment_taken: bool
    current_duration: str = Field(..., pattern=DURATION_PATTERN)
    full_duration: str = Field(..., pattern=DURATION_PATTERN)

    class Config:
        json_schema_extra = {
            "example": {
                "percent": 100,
                "assessment_taken": True,
                "current_duration": "00:10:00",
                "full_duration": "00:10:00"
            }
        }


class MessageResponse(BaseModel):
    success: bool = True
    message: str
