from enum import Enum

from sqlalchemy import Column, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @classmethod
    def all(cls) -> list[str]:
        return [s.value for s in cls]

    @classmethod
    def blocking(cls) -> list[str]:
        """Statuses that hold a slot."""
        return [cls.PENDING.value, cls.CONFIRMED.value]


# Cancelled rows are outside the uniqueness domain, so a cancelled slot is re-bookable
ACTIVE_BOOKING_PREDICATE = text(f"status != '{BookingStatus.CANCELLED.value}'")


class Consultants(Base):
    __tablename__ = 'consultants'

    id = Column(Integer, primary_key=True)
    public_id = Column(Text, nullable=False, unique=True)
    display_name = Column(Text, nullable=False)
    title = Column(Text)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    availability = relationship('Availability', back_populates='consultant')
    bookings = relationship('Bookings', back_populates='consultant')


class Availability(Base):
    __tablename__ = 'availability'
    __table_args__ = (
        UniqueConstraint('consultant_id', 'day_of_week'),
    )

    id = Column(Integer, primary_key=True)
    consultant_id = Column(ForeignKey('consultants.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday … 6 = Saturday
    start_time = Column(Text, nullable=False)  # HH:MM:SS
    end_time = Column(Text, nullable=False)    # HH:MM:SS, <= start_time wraps past midnight

    consultant = relationship('Consultants', back_populates='availability')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index(
            'uq_bookings_active_slot',
            'consultant_id', 'booking_date', 'booking_time',
            unique=True,
            sqlite_where=ACTIVE_BOOKING_PREDICATE,
            postgresql_where=ACTIVE_BOOKING_PREDICATE,
        ),
        Index('idx_bookings_consultant_date_status', 'consultant_id', 'booking_date', 'status'),
        Index('idx_bookings_status_date', 'status', 'booking_date'),
    )

    id = Column(Integer, primary_key=True)
    consultant_id = Column(ForeignKey('consultants.id', ondelete='CASCADE'), nullable=False)
    customer_name = Column(Text, nullable=False)
    customer_email = Column(Text, nullable=False)
    booking_date = Column(Text, nullable=False)  # YYYY-MM-DD
    booking_time = Column(Text, nullable=False)  # HH:MM
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    consultant = relationship('Consultants', back_populates='bookings')
