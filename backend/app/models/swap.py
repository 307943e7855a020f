from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from app.database.base import Base

SWAP_PENDING = "pending"
SWAP_APPROVED = "approved"
SWAP_REJECTED = "rejected"
SWAP_STATUSES = {SWAP_PENDING, SWAP_APPROVED, SWAP_REJECTED}
SWAP_DECISIONS = {SWAP_APPROVED, SWAP_REJECTED}


class SwapRequest(Base):
    __tablename__ = "swap_requests"
    __table_args__ = (
        CheckConstraint("requester_id <> target_id", name="ck_swap_requests_not_self"),
    )

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    target_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assignment_type = Column(String(8), nullable=False)
    original_assignment_id = Column(Integer, nullable=False)
    proposed_assignment_id = Column(Integer, nullable=True)
    reason = Column(Text, nullable=False, default="")
    status = Column(String(16), nullable=False, default=SWAP_PENDING)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewer_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    requester = relationship("User", foreign_keys=[requester_id])
    target = relationship("User", foreign_keys=[target_id])
    reviewer = relationship("User", foreign_keys=[reviewer_id])

    @property
    def is_two_way(self) -> bool:
        return self.proposed_assignment_id is not None
