from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field

DroidRef = Union[int, str]  # catalog index or kind name


class StartRequest(BaseModel):
    """Battle start request schema."""
    mode: Literal["duel", "team"] = "duel"
    side_a: List[DroidRef] = Field(default_factory=lambda: [0])
    side_b: List[DroidRef] = Field(default_factory=lambda: [7])
    seed: Optional[int] = None
    map: Optional[str] = None  # random when omitted


class StartResponse(BaseModel):
    battle_id: str
    map: str
    arena: List[int]


class EventsResponse(BaseModel):
    """Events response schema."""
    next_offset: int
    events: list[dict]
