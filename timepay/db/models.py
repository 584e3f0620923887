from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from timepay.db.session import Base


class UTCDateTime(TypeDecorator):
    """Stores aware datetimes as naive UTC and hands them back tagged as UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetimes cannot be stored")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimeEntryRow(Base):
    __tablename__ = "time_entries"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    clock_in = Column(UTCDateTime, nullable=False, index=True)
    clock_out = Column(UTCDateTime, nullable=True)
    total_break_minutes = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    is_manual = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, default=_utcnow)

    breaks = relationship(
        "BreakRow",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="BreakRow.start",
    )

    __table_args__ = (
        # At most one open entry per user.
        Index(
            "uq_time_entries_open_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("clock_out IS NULL"),
            postgresql_where=text("clock_out IS NULL"),
        ),
    )


class BreakRow(Base):
    __tablename__ = "breaks"

    id = Column(String(36), primary_key=True)
    entry_id = Column(String(36), ForeignKey("time_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    break_type = Column(String(20), nullable=False, default="meal")
    start = Column("start_time", UTCDateTime, nullable=False)
    end = Column("end_time", UTCDateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    entry = relationship("TimeEntryRow", back_populates="breaks")


class PaySettingsRow(Base):
    __tablename__ = "pay_settings"

    user_id = Column(String(64), primary_key=True)
    hourly_rate = Column(Numeric(12, 4), nullable=False, default=0)
    overtime_multiplier = Column(Numeric(6, 3), nullable=False, default=1.5)
    rounding_interval = Column(Integer, nullable=False, default=5)
    pay_period_type = Column(String(20), nullable=False, default="monthly")  # weekly|monthly
    pay_period_end_day = Column(Integer, nullable=False, default=10)
    paycheck_adjustment = Column(Numeric(12, 2), nullable=False, default=0)
    state = Column(String(2), nullable=True)
    state_tax_rate = Column(Numeric(8, 5), nullable=True)
    filing_status = Column(String(20), nullable=False, default="single")
    time_zone = Column(String(64), nullable=False, default="UTC")
    weekly_schedule = Column(JSON, nullable=True)  # weekday -> planned hours
    updated_at = Column(UTCDateTime, default=_utcnow, onupdate=_utcnow)
