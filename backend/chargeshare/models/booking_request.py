"""
BookingRequest model: an owner-approval-mediated reservation proposal.

Key design decisions:
- `owner_id` is copied from the charger at creation so owner-side listing
  and authorization need no join
- `booking_id` links the Booking materialized on approval
- Status moves only through compare-and-set updates in booking_request_service
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index, CheckConstraint

from chargeshare.db.base import Base, TimestampMixin

REQUEST_PENDING = "pending"
REQUEST_APPROVED = "approved"
REQUEST_REJECTED = "rejected"
REQUEST_SESSION_ACTIVE = "session_active"
REQUEST_SESSION_ENDED = "session_ended"
REQUEST_SESSION_CANCELLED = "session_cancelled"
REQUEST_CANCELLED = "cancelled"
REQUEST_STATUSES = (
    REQUEST_PENDING,
    REQUEST_APPROVED,
    REQUEST_REJECTED,
    REQUEST_SESSION_ACTIVE,
    REQUEST_SESSION_ENDED,
    REQUEST_SESSION_CANCELLED,
    REQUEST_CANCELLED,
)


class BookingRequest(Base, TimestampMixin):
    __tablename__ = "booking_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    charger_id = Column(Integer, ForeignKey("chargers.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    duration_hours = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default=REQUEST_PENDING)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    approved_at = Column(DateTime(timezone=True), nullable=True)
    session_started_at = Column(DateTime(timezone=True), nullable=True)
    session_ended_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("duration_hours >= 0.5 AND duration_hours <= 1.5", name="check_request_duration"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'session_active', "
            "'session_ended', 'session_cancelled', 'cancelled')",
            name="check_request_status",
        ),
        # Owner dashboard query: "my pending requests"
        Index("ix_booking_requests_owner_status", "owner_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<BookingRequest(id={self.id}, user={self.user_id}, charger={self.charger_id}, status={self.status})>"
