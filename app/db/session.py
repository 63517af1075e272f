# app/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.core.config import settings


def _engine_options(uri: str) -> dict:
    # SQLite en memoria (pruebas locales) necesita una sola conexión compartida entre hilos
    if uri.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if uri in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options
    return {"pool_pre_ping": True}


# Se crea el motor (engine) de SQLAlchemy usando la URI de la configuración.
engine = create_engine(settings.DATABASE_URI, **_engine_options(settings.DATABASE_URI))

# Se crea una fábrica de sesiones que se usará para crear sesiones individuales.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Función generadora para obtener instancias de base de datos
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
