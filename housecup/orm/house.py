"""
House and Guest Models

Static house registry plus the guest roster.

Rules:
- Exactly four houses exist; they are seeded once and never deleted
- Guests start as unregistered placeholders (house_id NULL, is_active False)
- Cached scores are an optimisation; point_awards is the source of truth
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String

from housecup.orm.base import Base


class House(Base):
    __tablename__ = "houses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), unique=True, nullable=False)

    # Direct house awards + active members' personal scores
    score = Column(Integer, nullable=False, default=0)


class Guest(Base):
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False)

    # Houses cannot be removed while guests point at them
    house_id = Column(
        Integer,
        ForeignKey("houses.id", ondelete="RESTRICT"),
        nullable=True
    )

    personal_score = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=False)
    registered_at = Column(DateTime, nullable=True)
    character = Column(String(128), nullable=True)

    __table_args__ = (
        Index("idx_guests_house_active", "house_id", "is_active"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "house_id": self.house_id,
            "personal_score": self.personal_score,
            "is_active": self.is_active,
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
            "character": self.character,
        }
