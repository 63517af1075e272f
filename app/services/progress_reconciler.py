# app/services/progress_reconciler.py
"""
Reconciliación de muestras de progreso de video.

Funciones puras: a partir de una muestra reportada por el cliente y del
registro almacenado (si existe) deciden el nuevo estado y el estatus
derivado. No hacen I/O; la búsqueda de la fecha de inscripción se inyecta.

Reglas:
- El porcentaje se recorta a [0, 100].
- La fecha de inscripción, una vez resuelta, no cambia.
- Vencido (Overdue) tiene prioridad sobre el porcentaje cuando la
  inscripción tiene más de OVERDUE_AFTER de antigüedad.
- Una muestra solo se escribe si no retrocede el porcentaje o si cambia
  el estatus; en otro caso es obsoleta y se ignora sin error.
"""
import enum
import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("app.video_progress.reconciler")

OVERDUE_AFTER = timedelta(days=2)
DEFAULT_DURATION = "00:00:00"

EnrolmentResolver = Callable[[str], Optional[datetime]]


class WatchStatus(enum.IntEnum):
    NOT_STARTED = 0
    IN_PROGRESS = 1
    COMPLETED = 2
    OVERDUE = 3

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    WatchStatus.NOT_STARTED: "Not Started",
    WatchStatus.IN_PROGRESS: "In Progress",
    WatchStatus.COMPLETED: "Completed",
    WatchStatus.OVERDUE: "Overdue",
}


def status_label(value: Optional[int]) -> str:
    """Etiqueta legible para un valor de estatus almacenado."""
    try:
        return WatchStatus(value).label
    except ValueError:
        return "Unknown"


class ReconcileAction(str, enum.Enum):
    INSERT = "insert"
    UPDATE = "update"
    STALE = "stale"


@dataclass(frozen=True)
class ProgressSample:
    """Una observación de progreso reportada por el cliente."""
    video_id: str
    session_id: str
    session_name: str
    percent: float
    current_duration: str = DEFAULT_DURATION
    full_duration: str = DEFAULT_DURATION
    # main | iframe | external; solo para diagnóstico
    source: str = "main"

    def __post_init__(self):
        # Sin espacios alrededor: " 12" y "12" son la misma sesión
        for name in ("video_id", "session_id", "session_name"):
            object.__setattr__(self, name, (getattr(self, name) or "").strip())


@dataclass(frozen=True)
class Reconciliation:
    action: ReconcileAction
    status: WatchStatus
    percent: int
    enrolment_date: Optional[datetime]
    values: Dict[str, Any] = field(default_factory=dict)

    @property
    def applied(self) -> bool:
        return self.action is not ReconcileAction.STALE

    def as_stale(self) -> "Reconciliation":
        return replace(self, action=ReconcileAction.STALE, values={})


def clamp_percent(value: Any) -> int:
    """Trunca al entero inferior y recorta a [0, 100]."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 100 if number > 0 else 0
    return max(0, min(100, int(math.floor(number))))


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Algunos motores (SQLite) devuelven fechas sin zona horaria; se asumen UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def calculate_status(
    percent: int,
    enrolment_date: Optional[datetime],
    now: datetime,
    overdue_after: timedelta = OVERDUE_AFTER,
) -> WatchStatus:
    """
    Estatus derivado de (porcentaje, fecha de inscripción, ahora).

    La regla de vencimiento se evalúa primero: una inscripción con más de
    overdue_after de antigüedad es Overdue aunque el video esté completo.
    """
    enrolment_date = as_utc(enrolment_date)
    if enrolment_date is not None and as_utc(now) - enrolment_date > overdue_after:
        return WatchStatus.OVERDUE

    percent = clamp_percent(percent)
    if percent == 0:
        return WatchStatus.NOT_STARTED
    if percent < 100:
        return WatchStatus.IN_PROGRESS
    return WatchStatus.COMPLETED


def should_apply(
    stored_percent: int,
    stored_status: int,
    percent: int,
    status: WatchStatus,
) -> bool:
    """Política de escritura: no retroceder el porcentaje salvo que cambie el estatus."""
    return percent >= stored_percent or int(status) != int(stored_status)


def resolve_enrolment(
    existing: Optional[Any],
    session_id: str,
    resolver: Optional[EnrolmentResolver] = None,
) -> Optional[datetime]:
    """
    Reutiliza la fecha ya almacenada; si no hay, consulta al colaborador de
    contenido. Cualquier fallo se degrada a "sin fecha de inscripción".
    """
    if existing is not None and existing.enrolment_date is not None:
        return as_utc(existing.enrolment_date)
    if resolver is None:
        return None
    try:
        return as_utc(resolver(session_id))
    except Exception as e:
        logger.warning(
            f"No se pudo resolver la fecha de inscripción: session={session_id}, error={e}",
            extra={"session_id": session_id},
        )
        return None


def reconcile(
    existing: Optional[Any],
    sample: ProgressSample,
    now: datetime,
    resolve_enrolment_date: Optional[EnrolmentResolver] = None,
    overdue_after: timedelta = OVERDUE_AFTER,
) -> Reconciliation:
    """
    Calcula el nuevo estado de un registro a partir de una muestra.

    Args:
        existing: registro almacenado para la tripleta, o None si es nuevo
        sample: muestra reportada por el cliente
        now: instante de referencia para el estatus y last_watched
        resolve_enrolment_date: colaborador que devuelve la fecha de
            publicación de una sesión, o None
        overdue_after: ventana tras la cual la inscripción se considera vencida

    Returns:
        Reconciliation con la acción (insert, update o stale) y los valores
        a escribir. assessment_taken nunca se modifica por esta vía.
    """
    percent = clamp_percent(sample.percent)
    enrolment_date = resolve_enrolment(existing, sample.session_id, resolve_enrolment_date)
    status = calculate_status(percent, enrolment_date, now, overdue_after)

    values = {
        "percent": percent,
        "status": int(status),
        "session_name": sample.session_name,
        "current_duration": sample.current_duration or DEFAULT_DURATION,
        "full_duration": sample.full_duration or DEFAULT_DURATION,
        "enrolment_date": enrolment_date,
        "last_watched": now,
    }

    if existing is None:
        values.update(
            video_id=sample.video_id,
            session_id=sample.session_id,
            assessment_taken=False,
        )
        return Reconciliation(ReconcileAction.INSERT, status, percent, enrolment_date, values)

    if not should_apply(existing.percent, existing.status, percent, status):
        logger.info(
            f"Muestra obsoleta ignorada: video={sample.video_id}, session={sample.session_id}, "
            f"percent={percent} < almacenado={existing.percent}, source={sample.source}",
            extra={
                "video_id": sample.video_id,
                "session_id": sample.session_id,
                "percent": percent,
                "action": ReconcileAction.STALE.value,
                "source": sample.source,
            },
        )
        return Reconciliation(ReconcileAction.STALE, status, percent, enrolment_date)

    return Reconciliation(ReconcileAction.UPDATE, status, percent, enrolment_date, values)
