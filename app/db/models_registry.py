# app/db/models_registry.py
# Este archivo importa todos los modelos para que Alembic y create_all puedan detectarlos

from app.db.base import Base
from app.models.user import User
from app.models.watch_record import WatchRecord

__all__ = ["Base", "User", "WatchRecord"]
