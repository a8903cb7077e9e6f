"""
Charger model with slot inventory tracking.

Key design decisions:
- `available_slots` is denormalized (no COUNT over occupying reservations)
  and only moves through reserve_slot/release_slot conditional updates
- CHECK constraints keep 0 <= available_slots <= total_slots as the last line
  of defense
- `version` is bumped on every slot mutation so readers can detect churn
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, Index, CheckConstraint

from chargeshare.db.base import Base, TimestampMixin

CHARGER_TYPES = ("DC Fast", "Level 2", "Level 1")


class Charger(Base, TimestampMixin):
    __tablename__ = "chargers"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    address = Column(String(255), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    charger_type = Column(String(20), nullable=False, default="Level 2")
    price_per_hour = Column(Float, nullable=False, default=0.0)
    rating = Column(Float, nullable=False, default=4.5)
    total_slots = Column(Integer, nullable=False, default=4)
    available_slots = Column(Integer, nullable=False, default=4)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("total_slots > 0", name="check_total_slots_positive"),
        CheckConstraint("available_slots >= 0", name="check_available_slots_non_negative"),
        CheckConstraint("available_slots <= total_slots", name="check_available_lte_total"),
        CheckConstraint(
            "charger_type IN ('DC Fast', 'Level 2', 'Level 1')", name="check_charger_type"
        ),
        CheckConstraint("price_per_hour >= 0", name="check_price_non_negative"),
        Index("ix_chargers_available", "available_slots"),
    )

    def __repr__(self) -> str:
        return f"<Charger(id={self.id}, name={self.name}, available={self.available_slots}/{self.total_slots})>"
