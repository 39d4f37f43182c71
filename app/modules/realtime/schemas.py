from pydantic import BaseModel, Field
from typing import Literal, Dict, Any


class ChangeEvent(BaseModel):
    """A row change, shaped like a Supabase realtime postgres_changes payload"""
    table: str
    event: Literal["INSERT", "UPDATE", "DELETE"]
    new: Dict[str, Any] = Field(default_factory=dict)
    old: Dict[str, Any] = Field(default_factory=dict)
