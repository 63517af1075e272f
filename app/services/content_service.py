import httpx
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.core.config import settings

logger = logging.getLogger("app.video_progress.content")


def _parse_post_date(payload: Dict[str, Any]) -> Optional[datetime]:
    # date_gmt viene en UTC sin zona; date es la hora local del sitio
    raw = payload.get("date_gmt") or payload.get("date")
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Fecha de publicación inválida: {raw}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ContentService:
    """
    Cliente del CMS que publica las sesiones (API REST estilo WordPress).
    La fecha de publicación de una sesión es su fecha de inscripción.
    Es de mejor esfuerzo: cualquier error devuelve None.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.CONTENT_API_BASE_URL) or ""
        self.base_url = self.base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.CONTENT_API_TIMEOUT
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def resolve_enrolment_date(self, session_id: Optional[str]) -> Optional[datetime]:
        """
        Busca la fecha de publicación de la sesión. Solo los IDs numéricos
        corresponden a contenido del CMS y solo el contenido publicado cuenta.
        """
        session_id = (session_id or "").strip()
        if not session_id.isdigit():
            logger.debug(f"Session ID is not numeric: {session_id}")
            return None
        if not self.enabled:
            return None

        url = f"{self.base_url}/posts/{int(session_id)}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(url, params={"_fields": "id,status,date,date_gmt"})
            if response.status_code == 404:
                logger.info(f"No valid post found for session_id: {session_id}")
                return None
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                f"Error consultando la fecha de inscripción: session={session_id}, error={str(e)}",
                extra={"session_id": session_id},
            )
            return None

        if not isinstance(payload, dict) or payload.get("status") != "publish":
            logger.info(f"No valid post found for session_id: {session_id}")
            return None

        enrolment_date = _parse_post_date(payload)
        if enrolment_date is not None:
            logger.info(
                f"Found enrolment date from post {session_id}: {enrolment_date.isoformat()}",
                extra={"session_id": session_id},
            )
        return enrolment_date


content_service = ContentService()


def get_content_service() -> ContentService:
    return content_service
