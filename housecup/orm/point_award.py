"""
Point Award Ledger Model

Append-only audit log of point awards. Every score in the system is
derivable from these rows alone.

Immutability guarantees:
- Rows are NEVER updated or deleted by the core
- Exactly one of guest_id / house_id is set (CHECK constraint)
- If the subject disappears the award survives with the reference cleared
"""
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text

from housecup.orm.base import Base


class PointAward(Base):
    __tablename__ = "point_awards"

    id = Column(Integer, primary_key=True, autoincrement=True)

    guest_id = Column(Integer, ForeignKey("guests.id", ondelete="SET NULL"), nullable=True)
    house_id = Column(Integer, ForeignKey("houses.id", ondelete="SET NULL"), nullable=True)

    amount = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    awarded_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        # ON DELETE SET NULL may leave both references empty; never both set
        CheckConstraint(
            "NOT (guest_id IS NOT NULL AND house_id IS NOT NULL)",
            name="ck_point_awards_single_subject"
        ),
        CheckConstraint("length(trim(reason)) > 0", name="ck_point_awards_reason"),
        Index("idx_point_awards_guest", "guest_id", "awarded_at"),
        Index("idx_point_awards_house", "house_id", "awarded_at"),
    )
