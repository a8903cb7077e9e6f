"""
Account model: identity, role and the loyalty counters owned by the ledger.

Key design decisions:
- Counters are mutated only through `chargeshare.services.account_ledger`
  using single conditional UPDATE statements, never read-modify-write.
- green_score has no DB-level bound; the ledger clamps it to [0, ceiling].
"""

from sqlalchemy import Column, Integer, String, Float, CheckConstraint

from chargeshare.db.base import Base, TimestampMixin

ROLE_DRIVER = "driver"
ROLE_OWNER = "owner"
ROLES = (ROLE_DRIVER, ROLE_OWNER)


class Account(Base, TimestampMixin):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(10), nullable=False, default=ROLE_DRIVER)

    green_score = Column(Integer, nullable=False, default=50)
    total_sessions = Column(Integer, nullable=False, default=0)
    estimated_co2_saved = Column(Float, nullable=False, default=0.0)  # kg
    total_charging_time = Column(Float, nullable=False, default=0.0)  # hours

    __table_args__ = (
        CheckConstraint("role IN ('driver', 'owner')", name="check_account_role"),
        CheckConstraint("total_sessions >= 0", name="check_total_sessions_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, role={self.role}, green_score={self.green_score})>"
