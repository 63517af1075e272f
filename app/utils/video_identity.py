# app/utils/video_identity.py
"""
Identificadores de video y formato de duraciones.

Cuando el reproductor no envía un ID explícito se deriva uno de la URL del
video: nombre de archivo (máx. 10 caracteres) + últimos 4 dígitos de un hash
rodante de la ruta. Es una clave de deduplicación de mejor esfuerzo, no un
identificador único; se prefieren IDs explícitos.
"""
import logging
import re
import time
from typing import Optional
from urllib.parse import quote, urljoin, urlsplit

logger = logging.getLogger("app.video_progress.identity")

SHORT_NAME_LENGTH = 10
HASH_DIGITS = 4
DURATION_PATTERN = r"^\d{2}:[0-5]\d:[0-5]\d$"

_DURATION_RE = re.compile(DURATION_PATTERN)
# Todo salvo el conjunto de codificación de ruta WHATWG (controles, espacio, " # < > ? ` { })
_PATH_SAFE = "/:@!$&'()*+,;=%-._~[]|^"


def path_hash(path: str) -> int:
    """hash = hash * 31 + código de carácter, reducido a entero de 32 bits con signo."""
    value = 0
    for char in path:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def _url_path(src: str) -> str:
    # Como URL.pathname: relativas contra el origen y sin segmentos . ni ..
    path = urljoin("/", urlsplit(src.strip()).path)
    return quote(path, safe=_PATH_SAFE)


def derive_video_id(src: str) -> Optional[str]:
    """Deriva un ID corto a partir de la URL de origen del video."""
    if not src or not src.strip():
        return None
    path = _url_path(src)
    filename = path.rsplit("/", 1)[-1]
    short_name = filename.split(".", 1)[0][:SHORT_NAME_LENGTH]
    short_hash = str(abs(path_hash(path)))[-HASH_DIGITS:]
    return f"{short_name}_{short_hash}"


def placeholder_video_id(position: int, now_ms: Optional[int] = None) -> str:
    """ID de último recurso: posición del elemento + marca de tiempo. No es estable entre recargas."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"video_{position}_{str(now_ms)[-6:]}"


def resolve_video_id(
    video_id: Optional[str] = None,
    src: Optional[str] = None,
    position: Optional[int] = None,
    now_ms: Optional[int] = None,
) -> Optional[str]:
    """
    Resuelve el identificador de un video en orden de preferencia:
    ID explícito, ID derivado de la URL, ID provisional por posición.
    Devuelve None si no hay datos suficientes.
    """
    if video_id and video_id.strip():
        return video_id.strip()

    derived = derive_video_id(src) if src else None
    if derived:
        logger.debug(f"Generated video ID: {derived} from URL: {src}")
        return derived

    if position is not None:
        fallback = placeholder_video_id(position, now_ms)
        logger.warning(
            f"Fallback video ID generated: {fallback}; los datos de seguimiento no serán estables",
            extra={"video_id": fallback},
        )
        return fallback

    return None


def format_duration(seconds: float) -> str:
    """Segundos a HH:MM:SS (truncado, con ceros a la izquierda)."""
    if seconds is None or seconds != seconds or seconds < 0:
        seconds = 0
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def is_valid_duration(value: str) -> bool:
    return bool(value) and bool(_DURATION_RE.match(value))


def parse_duration(value: str) -> int:
    """HH:MM:SS a segundos. Lanza ValueError si el formato no es válido."""
    if not is_valid_duration(value):
        raise ValueError(f"Invalid duration '{value}', expected HH:MM:SS")
    hours, minutes, secs = (int(part) for part in value.split(":"))
    return hours * 3600 + minutes * 60 + secs
