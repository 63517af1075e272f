import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    DuplicateWatchRecord,
    ProgressValidationError,
    StoreFailure,
    WatchRecordNotFound,
)
from app.crud.crud_watch_record import CRUDWatchRecord, watch_records
from app.models.watch_record import WatchRecord
from app.services.content_service import ContentService
from app.services.progress_reconciler import (
    ProgressSample,
    ReconcileAction,
    Reconciliation,
    calculate_status,
    clamp_percent,
    reconcile,
)
from app.utils.video_identity import is_valid_duration

logger = logging.getLogger("app.video_progress.service")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressService:
    """
    Aplica muestras de progreso y ediciones administrativas sobre el store.

    Cada muestra se procesa como lectura + reconciliación + escritura
    condicional atómica; nunca como "leer y luego escribir sin condición".
    """

    def __init__(
        self,
        store: Optional[CRUDWatchRecord] = None,
        content: Optional[ContentService] = None,
        overdue_after: Optional[timedelta] = None,
    ):
        self.store = store or watch_records
        self.content = content
        self.overdue_after = overdue_after or timedelta(days=settings.OVERDUE_AFTER_DAYS)

    def _resolver(self):
        return self.content.resolve_enrolment_date if self.content is not None else None

    @staticmethod
    def validate_sample(sample: ProgressSample) -> None:
        missing = [
            name for name in ("video_id", "session_id", "session_name")
            if not getattr(sample, name)
        ]
        if missing:
            raise ProgressValidationError(f"Missing required fields: {', '.join(missing)}")
        for name in ("current_duration", "full_duration"):
            if not is_valid_duration(getattr(sample, name)):
                raise ProgressValidationError(f"Invalid {name}, expected HH:MM:SS")

    def record_sample(
        self,
        db: Session,
        user_id: int,
        sample: ProgressSample,
        now: Optional[datetime] = None,
    ) -> Reconciliation:
        """
        Registra una muestra para (user_id, video, sesión).

        Si dos peticiones intentan crear el mismo registro a la vez, la
        perdedora vuelve a leer y se reconcilia contra la fila ganadora.

        Raises:
            ProgressValidationError: faltan datos requeridos
            StoreFailure: la base de datos rechazó la escritura
        """
        self.validate_sample(sample)
        now = now or utcnow()
        context = {
            "user_id": user_id,
            "video_id": sample.video_id,
            "session_id": sample.session_id,
            "source": sample.source,
        }

        for attempt in range(2):
            try:
                existing = self.store.get(db, user_id, sample.video_id, sample.session_id)
                result = reconcile(existing, sample, now, self._resolver(), self.overdue_after)

                if result.action is ReconcileAction.INSERT:
                    self.store.insert(db, dict(result.values, user_id=user_id))
                elif result.action is ReconcileAction.UPDATE:
                    written = self.store.conditional_update(
                        db, existing.id, result.values, result.percent, int(result.status)
                    )
                    if not written:
                        # Otra escritura avanzó el registro entre la lectura y el UPDATE
                        result = result.as_stale()
            except DuplicateWatchRecord:
                if attempt:
                    logger.error("Conflicto persistente al insertar progreso", extra=context)
                    raise
                logger.info("Inserción concurrente detectada; reconciliando de nuevo", extra=context)
                continue
            except StoreFailure as e:
                logger.error(f"Escritura rechazada por la base de datos: {str(e)}", extra=context)
                raise
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error guardando progreso: {str(e)}", exc_info=True, extra=context)
                raise StoreFailure(str(e)) from e

            logger.info(
                f"Progreso procesado: user={user_id}, video={sample.video_id}, "
                f"session={sample.session_id}, percent={result.percent}, "
                f"status={result.status.label}, action={result.action.value}",
                extra=dict(context, action=result.action.value, status=int(result.status),
                           percent=result.percent),
            )
            return result

    def apply_admin_edit(
        self,
        db: Session,
        record_id: int,
        percent: float,
        assessment_taken: bool,
        current_duration: str,
        full_duration: str,
        now: Optional[datetime] = None,
    ) -> WatchRecord:
        """
        Edición administrativa. El estatus se recalcula con la fecha de
        inscripción almacenada; nunca se asigna directamente.
        """
        for name, value in (("current_duration", current_duration), ("full_duration", full_duration)):
            if not is_valid_duration(value):
                raise ProgressValidationError(f"Invalid {name}, expected HH:MM:SS")

        record = self.store.get_by_id(db, record_id)
        if record is None:
            raise WatchRecordNotFound(record_id)

        now = now or utcnow()
        percent = clamp_percent(percent)
        status = calculate_status(percent, record.enrolment_date, now, self.overdue_after)
        try:
            record = self.store.update_fields(db, record, {
                "percent": percent,
                "assessment_taken": bool(assessment_taken),
                "current_duration": current_duration,
                "full_duration": full_duration,
                "status": int(status),
                "last_watched": now,
            })
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error actualizando registro {record_id}: {str(e)}", exc_info=True)
            raise StoreFailure(str(e)) from e

        logger.info(
            f"Registro actualizado por administrador: id={record_id}, percent={percent}, "
            f"status={status.label}",
            extra={"record_id": record_id, "percent": percent, "status": int(status)},
        )
        return record

    def delete_record(self, db: Session, record_id: int) -> None:
        try:
            deleted = self.store.delete(db, record_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error eliminando registro {record_id}: {str(e)}", exc_info=True)
            raise StoreFailure(str(e)) from e
        if not deleted:
            raise WatchRecordNotFound(record_id)
        logger.info(f"Registro eliminado: id={record_id}", extra={"record_id": record_id})
