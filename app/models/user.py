# app/models/user.py
from sqlalchemy import Boolean, Column, Integer, String, TIMESTAMP, func
from sqlalchemy.orm import relationship

from app.db.base import Base


class User(Base):
    """
    Usuario autenticado. Los visores reportan progreso; los administradores
    (is_admin) consultan, editan y exportan el reporte.
    """
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True)
    username = Column(String(150), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, server_default='true', default=True, nullable=False)
    is_admin = Column(Boolean, server_default='false', default=False, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    watch_records = relationship("WatchRecord", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', admin={self.is_admin})>"
