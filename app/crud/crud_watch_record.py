from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

from sqlalchemy import desc, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from app.core.exceptions import DuplicateWatchRecord, StoreFailure
from app.models.user import User
from app.models.watch_record import WatchRecord

# Campos que el administrador puede editar directamente
ADMIN_EDITABLE_FIELDS = (
    "percent",
    "assessment_taken",
    "current_duration",
    "full_duration",
    "status",
    "last_watched",
)

UNIQUE_CONSTRAINT = "uq_watch_user_video_session"


@dataclass
class WatchRecordFilters:
    """Filtros del reporte: coincidencia parcial en usuario y sesión, exacta en estatus."""
    user_like: Optional[str] = None
    session_name_like: Optional[str] = None
    status: Optional[int] = None


class ReportRow(NamedTuple):
    record: WatchRecord
    user_login: Optional[str]
    user_email: Optional[str]


def _is_unique_violation(error: IntegrityError) -> bool:
    # PostgreSQL: SQLSTATE 23505; SQLite solo lo indica en el mensaje
    if getattr(error.orig, "pgcode", None) == "23505":
        return True
    message = str(error.orig)
    return UNIQUE_CONSTRAINT in message or "UNIQUE constraint failed" in message


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class CRUDWatchRecord:
    def get(self, db: Session, user_id: int, video_id: str, session_id: str) -> Optional[WatchRecord]:
        return db.query(WatchRecord).filter(
            WatchRecord.user_id == user_id,
            WatchRecord.video_id == video_id,
            WatchRecord.session_id == session_id,
        ).first()

    def get_by_id(self, db: Session, record_id: int) -> Optional[WatchRecord]:
        return db.query(WatchRecord).filter(WatchRecord.id == record_id).first()

    def get_report_row(self, db: Session, record_id: int) -> Optional[ReportRow]:
        """Registro con login y email del usuario (LEFT JOIN)."""
        row = self._report_query(db).filter(WatchRecord.id == record_id).first()
        return ReportRow(*row) if row else None

    def insert(self, db: Session, values: Dict[str, Any]) -> WatchRecord:
        """
        Inserta un registro nuevo. Si otra petición insertó la misma tripleta
        antes, la restricción única falla y se lanza DuplicateWatchRecord.
        """
        db_obj = WatchRecord(**values)
        db.add(db_obj)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if _is_unique_violation(e):
                raise DuplicateWatchRecord(str(e.orig)) from e
            # Llave foránea o check: reintentar no cambia el resultado
            raise StoreFailure(str(e.orig)) from e
        db.refresh(db_obj)
        return db_obj

    def conditional_update(
        self,
        db: Session,
        record_id: int,
        values: Dict[str, Any],
        percent: int,
        status: int,
    ) -> bool:
        """
        Actualización atómica: solo escribe si el porcentaje no retrocede
        respecto al valor almacenado en ese momento o si cambia el estatus.
        La fecha de inscripción ya almacenada nunca se sobrescribe.

        Returns:
            True si se escribió la fila, False si la condición no se cumplió.
        """
        values = dict(values)
        enrolment_date = values.pop("enrolment_date", None)
        if enrolment_date is not None:
            values["enrolment_date"] = func.coalesce(WatchRecord.enrolment_date, enrolment_date)

        stmt = (
            update(WatchRecord)
            .where(
                WatchRecord.id == record_id,
                or_(WatchRecord.percent <= percent, WatchRecord.status != status),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        db.commit()
        return result.rowcount > 0

    def update_fields(self, db: Session, record: WatchRecord, values: Dict[str, Any]) -> WatchRecord:
        for field_name, value in values.items():
            if field_name not in ADMIN_EDITABLE_FIELDS:
                raise ValueError(f"Field '{field_name}' is not editable")
            setattr(record, field_name, value)
        db.commit()
        db.refresh(record)
        return record

    def delete(self, db: Session, record_id: int) -> bool:
        record = self.get_by_id(db, record_id)
        if record is None:
            return False
        db.delete(record)
        db.commit()
        return True

    def list_for_user(self, db: Session, user_id: int, limit: int = 100) -> List[WatchRecord]:
        return (
            db.query(WatchRecord)
            .filter(WatchRecord.user_id == user_id)
            .order_by(desc(WatchRecord.last_watched), desc(WatchRecord.id))
            .limit(limit)
            .all()
        )

    def query(
        self,
        db: Session,
        filters: Optional[WatchRecordFilters] = None,
        limit: Optional[int] = 100,
    ) -> List[ReportRow]:
        """
        Registros filtrados, del más reciente (last_watched) al más antiguo.
        limit=None devuelve todos (exportación).
        """
        query = self._ordered(self._filtered(db, filters))
        if limit is not None:
            query = query.limit(limit)
        return [ReportRow(*row) for row in query.all()]

    def iter_query(
        self,
        db: Session,
        filters: Optional[WatchRecordFilters] = None,
        batch_size: int = 500,
    ) -> Iterator[ReportRow]:
        """Igual que query sin límite, pero leyendo por lotes para exportaciones grandes."""
        query = self._ordered(self._filtered(db, filters)).yield_per(batch_size)
        for row in query:
            yield ReportRow(*row)

    def latest(self, db: Session, limit: int = 5) -> List[ReportRow]:
        """Últimos registros creados (id descendente), para diagnóstico."""
        rows = self._report_query(db).order_by(desc(WatchRecord.id)).limit(limit).all()
        return [ReportRow(*row) for row in rows]

    def count(self, db: Session, filters: Optional[WatchRecordFilters] = None) -> int:
        return self._filtered(db, filters).count()

    def _report_query(self, db: Session) -> Query:
        return db.query(WatchRecord, User.username, User.email).outerjoin(
            User, User.id == WatchRecord.user_id
        )

    def _filtered(self, db: Session, filters: Optional[WatchRecordFilters]) -> Query:
        query = self._report_query(db)
        if filters is None:
            return query

        if filters.user_like:
            pattern = _like_pattern(filters.user_like)
            query = query.filter(
                or_(
                    User.username.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
        if filters.session_name_like:
            pattern = _like_pattern(filters.session_name_like)
            query = query.filter(WatchRecord.session_name.ilike(pattern, escape="\\"))
        if filters.status is not None and filters.status >= 0:
            query = query.filter(WatchRecord.status == filters.status)
        return query

    @staticmethod
    def _ordered(query: Query) -> Query:
        return query.order_by(desc(WatchRecord.last_watched), desc(WatchRecord.id))


watch_records = CRUDWatchRecord()
