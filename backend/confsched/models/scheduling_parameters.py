from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from confsched.db.base import Base


class SchedulingParametersRecord(Base):
    __tablename__ = "scheduling_parameters"

    conference_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    conference_dates: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    session_length_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    daily_start_time: Mapped[str | None] = mapped_column(String(16), nullable=True)
    daily_end_time: Mapped[str | None] = mapped_column(String(16), nullable=True)
    available_room_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
