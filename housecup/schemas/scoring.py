"""
Pydantic Schemas for houses, guests and the point ledger
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Houses & Guests
# ============================================================================

class HouseStanding(BaseModel):
    id: int
    name: str
    score: int


class StandingsResponse(BaseModel):
    success: bool = True
    houses: List[HouseStanding]


class ScoreResponse(BaseModel):
    """Derived score of one guest or house."""
    success: bool = True
    entity: str
    entity_id: int
    score: int


class GuestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    house_id: Optional[int] = None
    personal_score: int
    is_active: bool
    registered_at: Optional[datetime] = None
    character: Optional[str] = None


class GuestRegisterRequest(BaseModel):
    """Omit house_id to have the guest sorted into a house."""
    house_id: Optional[int] = Field(None, description="Target house; null sorts the guest")
    character: Optional[str] = Field(None, max_length=128, description="Costume or character")


# ============================================================================
# Awards
# ============================================================================

class AwardCreate(BaseModel):
    """Exactly one of guest_id / house_id must be set."""
    guest_id: Optional[int] = Field(None, description="Guest receiving the points")
    house_id: Optional[int] = Field(None, description="House receiving the points")
    amount: int = Field(..., description="Signed point amount")
    reason: str = Field(..., description="Why the points were given or taken")


class AwardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    guest_id: Optional[int] = None
    house_id: Optional[int] = None
    amount: int
    reason: str
    awarded_at: datetime


class AwardLogItem(BaseModel):
    id: int
    amount: int
    reason: str
    awarded_at: datetime
    guest_name: Optional[str] = None
    house_name: Optional[str] = None


class ScoreDriftItem(BaseModel):
    entity: str
    entity_id: int
    cached: int
    derived: int


class ReconcileResponse(BaseModel):
    success: bool = True
    repaired: bool
    drift: List[ScoreDriftItem]
