# app/scripts/prestart.py
import logging
import time
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60
wait_seconds = 2


def main() -> int:
    db_uri = str(settings.DATABASE_URI)
    if settings.POSTGRES_PASSWORD:
        db_uri = db_uri.replace(settings.POSTGRES_PASSWORD, "******")
    logger.info(f"Esperando a la base de datos en: {db_uri}")

    engine = create_engine(str(settings.DATABASE_URI))
    for i in range(1, max_tries + 1):
        try:
            with engine.connect():
                logger.info("Conexión a la base de datos establecida")
                return 0
        except SQLAlchemyError as e:
            logger.warning(f"Intento {i}/{max_tries}: Base de datos no está lista. Reintentando...")
            logger.debug(f"Error de conexión: {e}")
            time.sleep(wait_seconds)

    logger.error("No se pudo conectar a la base de datos después de varios intentos. Saliendo.")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
