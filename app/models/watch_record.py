# app/models/watch_record.py
from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer,
    SmallInteger, String, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class WatchRecord(Base):
    """
    Progreso de visualización de un video por usuario y sesión.
    Existe exactamente un registro por (user_id, video_id, session_id).
    El campo status es derivado: solo lo escribe calculate_status.
    """
    __tablename__ = "video_watch_progress"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(String(255), nullable=False, index=True)
    session_id = Column(String(255), nullable=False, index=True)
    session_name = Column(String(255), nullable=True)
    percent = Column(Integer, nullable=False, default=0, server_default="0")
    current_duration = Column(String(8), nullable=False, default="00:00:00", server_default="00:00:00")
    full_duration = Column(String(8), nullable=False, default="00:00:00", server_default="00:00:00")
    assessment_taken = Column(Boolean, nullable=False, default=False, server_default="false")
    status = Column(SmallInteger, nullable=False, default=0, server_default="0", index=True)
    enrolment_date = Column(DateTime(timezone=True), nullable=True)
    last_watched = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", back_populates="watch_records")

    __table_args__ = (
        UniqueConstraint('user_id', 'video_id', 'session_id', name='uq_watch_user_video_session'),
        CheckConstraint('percent >= 0 AND percent <= 100', name='ck_watch_percent_range'),
    )

    def __repr__(self):
        return (
            f"<WatchRecord(user_id={self.user_id}, video_id='{self.video_id}', "
            f"session_id='{self.session_id}', percent={self.percent}, status={self.status})>"
        )
