"""Contract termination workflow models.

Stores termination requests and their state transition history.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Numeric, Text, Uuid, text
from sqlalchemy.orm import relationship

from rentflow.db.base import Base

_OPEN_STATUS_CLAUSE = text("status IN ('PENDING', 'ACCOUNTANT_APPROVED', 'OWNER_APPROVED')")


class TerminationRequest(Base):
    """
    A request to end a contract early.

    At most one request per contract may be open (not COMPLETED or REJECTED)
    at a time; the partial unique index enforces this at the store.
    """
    __tablename__ = "termination_requests"
    __table_args__ = (
        Index(
            "uq_termination_requests_open_contract",
            "contract_id",
            unique=True,
            sqlite_where=_OPEN_STATUS_CLAUSE,
            postgresql_where=_OPEN_STATUS_CLAUSE,
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    contract_id = Column(Uuid, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    reason = Column(Text, nullable=False)
    refund_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    # Refund destination
    bank_account_number = Column(String(100), nullable=True)
    bank_name = Column(String(255), nullable=True)
    account_holder_name = Column(String(255), nullable=True)

    status = Column(String(30), nullable=False, default="PENDING", index=True)
    rejection_reason = Column(Text, nullable=True)
    receipt_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contract = relationship("Contract", back_populates="termination_requests")
    requester = relationship("User", foreign_keys=[requested_by])
    history = relationship(
        "TerminationHistory",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="TerminationHistory.created_at",
    )

    def __repr__(self) -> str:
        return f"<TerminationRequest {self.contract_id} [{self.status}]>"


class TerminationHistory(Base):
    """One row per state change of a termination request, creation included."""
    __tablename__ = "termination_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    request_id = Column(Uuid, ForeignKey("termination_requests.id", ondelete="CASCADE"), nullable=False, index=True)

    from_state = Column(String(30), nullable=True)  # null for the creating row
    to_state = Column(String(30), nullable=False)
    action = Column(String(50), nullable=False)

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    request = relationship("TerminationRequest", back_populates="history")
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<TerminationHistory {self.from_state} -> {self.to_state}>"
