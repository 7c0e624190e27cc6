"""
Crossword Models

crossword_states: one opaque JSON blob of puzzle progress per guest.
house_crossword_completions: which of the seven words each house has solved.

Rules:
- A house completes each word at most once (UNIQUE house_id, word_index)
- Completions are never removed by the core
"""
from datetime import datetime

from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint
)

from housecup.orm.base import Base


class CrosswordState(Base):
    __tablename__ = "crossword_states"

    id = Column(Integer, primary_key=True, autoincrement=True)
    guest_id = Column(
        Integer,
        ForeignKey("guests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )

    # e.g. {"filled": [[row, col, "A"], ...], "completions": [false, ...]}
    state = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class HouseCrosswordCompletion(Base):
    __tablename__ = "house_crossword_completions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    house_id = Column(Integer, ForeignKey("houses.id", ondelete="CASCADE"), nullable=False)
    word_index = Column(Integer, nullable=False)
    completed_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("house_id", "word_index", name="uq_house_word"),
        CheckConstraint("word_index >= 0 AND word_index <= 6", name="ck_word_index_range"),
    )
