"""
Pydantic Schemas for the crossword tracker
"""
from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class CompletionCreate(BaseModel):
    house_id: int = Field(..., description="House that solved the word")
    word_index: int = Field(..., description="Word position, 0 to 6")


class CompletionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    house_id: int
    word_index: int
    completed_at: datetime


class CrosswordProgressResponse(BaseModel):
    """house_id -> completion flag per word."""
    success: bool = True
    progress: Dict[int, List[bool]]


class CrosswordStatePayload(BaseModel):
    """
    A guest's puzzle state. Only `completions` is interpreted; any other
    keys the client sends are stored untouched.
    """
    model_config = ConfigDict(extra="allow")

    filled: List[Any] = Field(default_factory=list)
    completions: List[bool] = Field(default_factory=list)


class CrosswordStateResponse(BaseModel):
    success: bool = True
    guest_id: int
    state: Dict[str, Any]
    new_house_completions: List[int] = Field(default_factory=list)
