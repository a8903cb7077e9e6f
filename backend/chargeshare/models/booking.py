"""
Booking model: a confirmed, slot-occupying reservation.

Key design decisions:
- Created directly by a driver or materialized from an approved request
- `green_points_earned` is fixed at creation; cancellation revokes exactly
  this amount so later changes to the award constant cannot cause drift
- Status field makes bookings terminal instead of deleting them
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, CheckConstraint

from chargeshare.db.base import Base, TimestampMixin

BOOKING_ACTIVE = "active"
BOOKING_COMPLETED = "completed"
BOOKING_CANCELLED = "cancelled"
BOOKING_STATUSES = (BOOKING_ACTIVE, BOOKING_COMPLETED, BOOKING_CANCELLED)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    charger_id = Column(Integer, ForeignKey("chargers.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration_hours = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default=BOOKING_ACTIVE)
    green_points_earned = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("duration_hours >= 0.5 AND duration_hours <= 1.5", name="check_booking_duration"),
        CheckConstraint("status IN ('active', 'completed', 'cancelled')", name="check_booking_status"),
        CheckConstraint("green_points_earned >= 0", name="check_green_points_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, charger={self.charger_id}, status={self.status})>"
