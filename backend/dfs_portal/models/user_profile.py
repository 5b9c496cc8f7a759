from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Boolean, JSON, ForeignKey, DateTime, func
from typing import Optional, List
from .authz import Base


class UserProfile(Base):
    __tablename__ = 'user_profiles'
    STATION_ALL = 'ALL'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    # nullable: rows imported from older stores may lack these; the scanner reports them
    employee_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(150), nullable=True, index=True)
    role: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    station: Mapped[str] = mapped_column(String(64), nullable=False, default=STATION_ALL)
    station_access: Mapped[List[str]] = mapped_column(JSON, default=list)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship('User')

__all__ = ["UserProfile"]
