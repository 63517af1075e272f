# app/core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import PostgresDsn, computed_field


class Settings(BaseSettings):
    """
    Gestiona la configuración de la aplicación cargando variables de entorno.
    Utiliza Pydantic para la validación de tipos.
    """
    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_case=True, extra="ignore"
    )

    PROJECT_NAME: str = "Video Watch Tracker API"
    VERSION: str = "3.0.0"

    # Variables de la base de datos leídas desde el archivo .env
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_DB: str = "video_tracker"
    POSTGRES_PORT: int = 5432
    # Si se define, reemplaza la URI construida a partir de POSTGRES_* (p.ej. sqlite:// en pruebas)
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    # --- JWT Settings ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Content collaborator (CMS que publica las sesiones) ---
    CONTENT_API_BASE_URL: Optional[str] = None
    CONTENT_API_TIMEOUT: float = 5.0

    # --- Reglas de progreso y reportes ---
    OVERDUE_AFTER_DAYS: int = 2
    REPORT_RESULT_LIMIT: int = 100
    EXPORT_BATCH_SIZE: int = 500

    # --- Logging / CORS ---
    LOG_DIR: str = "logs"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    @computed_field
    @property
    def DATABASE_URI(self) -> str:
        """
        Genera la URI de conexión a la base de datos en formato SQLAlchemy.
        Pydantic validará que la URI construida sea correcta.
        """
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI
        dsn = PostgresDsn.build(
            scheme="postgresql+psycopg2",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )
        return str(dsn)


# Instancia única de la configuración que será usada en toda la aplicación.
settings = Settings()
