"""
Exportación del reporte de progreso a CSV, Excel (XLSX) y JSON.

El estatus se exporta tal como está almacenado; aquí nunca se recalcula.
Las columnas y su orden son una superficie de compatibilidad.
"""
import csv
import io
import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Font

from app.crud.crud_watch_record import ReportRow
from app.services.progress_reconciler import status_label

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# (clave JSON, encabezado CSV/Excel)
EXPORT_COLUMNS: List[Tuple[str, str]] = [
    ("id", "ID"),
    ("user_id", "User ID"),
    ("user_login", "Username"),
    ("user_email", "Email"),
    ("video_id", "Video ID"),
    ("session_id", "Session ID"),
    ("session_name", "Session Name"),
    ("percent", "Progress (%)"),
    ("status", "Status"),
    ("status_label", "Status Label"),
    ("assessment_taken", "Assessment Taken"),
    ("current_duration", "Current Duration"),
    ("full_duration", "Full Duration"),
    ("last_watched", "Last Watched"),
    ("enrolment_date", "Enrolment Date"),
    ("created_at", "Created"),
]

EXPORT_FIELDS = [key for key, _ in EXPORT_COLUMNS]
EXPORT_HEADERS = [header for _, header in EXPORT_COLUMNS]

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "json": "application/json",
}


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.strftime(DATETIME_FORMAT) if value else None


def row_to_dict(row: ReportRow) -> Dict[str, Any]:
    """Fila del reporte desnormalizada con login y email del usuario."""
    record = row.record
    return {
        "id": record.id,
        "user_id": record.user_id,
        "user_login": row.user_login,
        "user_email": row.user_email,
        "video_id": record.video_id,
        "session_id": record.session_id,
        "session_name": record.session_name,
        "percent": record.percent,
        "status": record.status,
        "status_label": status_label(record.status),
        "assessment_taken": bool(record.assessment_taken),
        "current_duration": record.current_duration,
        "full_duration": record.full_duration,
        "last_watched": _format_datetime(record.last_watched),
        "enrolment_date": _format_datetime(record.enrolment_date),
        "created_at": _format_datetime(record.created_at),
    }


def _csv_cell(key: str, value: Any) -> Any:
    if key == "assessment_taken":
        return "Yes" if value else "No"
    return "" if value is None else value


def iter_csv(rows: Iterable[ReportRow]) -> Iterator[str]:
    """Genera el CSV línea por línea para StreamingResponse."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    def flush() -> str:
        chunk = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return chunk

    # BOM para que Excel detecte UTF-8
    writer.writerow(EXPORT_HEADERS)
    yield "\ufeff" + flush()
    for row in rows:
        data = row_to_dict(row)
        writer.writerow([_csv_cell(key, data[key]) for key in EXPORT_FIELDS])
        yield flush()


def build_xlsx(rows: Iterable[ReportRow], title: str = "Video Reports") -> bytes:
    """Libro de Excel de solo escritura con encabezado en negrita."""
    wb = Workbook(write_only=True)
    ws = wb.create_sheet(title=title)

    header_font = Font(bold=True)
    header_cells = []
    for header in EXPORT_HEADERS:
        cell = WriteOnlyCell(ws, value=header)
        cell.font = header_font
        header_cells.append(cell)
    ws.append(header_cells)

    for row in rows:
        data = row_to_dict(row)
        ws.append([_csv_cell(key, data[key]) for key in EXPORT_FIELDS])

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def iter_json(
    rows: Iterable[ReportRow],
    total_records: int,
    export_date: Optional[datetime] = None,
) -> Iterator[str]:
    """
    Genera {"exportDate", "totalRecords", "data": [...]} por partes
    para no construir el documento completo en memoria.
    """
    export_date = export_date or datetime.now(timezone.utc)
    yield (
        '{"exportDate": ' + json.dumps(export_date.isoformat())
        + ', "totalRecords": ' + json.dumps(total_records)
        + ', "data": ['
    )
    first = True
    for row in rows:
        prefix = "" if first else ", "
        first = False
        yield prefix + json.dumps(row_to_dict(row), ensure_ascii=False)
    yield "]}"


def export_filename(fmt: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"video-watch-report-{now.strftime('%Y%m%d-%H%M%S')}.{fmt}"
