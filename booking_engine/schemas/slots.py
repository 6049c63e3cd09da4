# booking_engine/schemas/slots.py
"""
Pydantic schemas for slots.
"""

from datetime import date, datetime
from pydantic import BaseModel, Field


class SlotRead(BaseModel):
    """A single available slot."""
    start: datetime
    end: datetime
    capacity_remaining: int
    staff_ids: list[int] = Field(default_factory=list, description="Free staff, ascending id. Empty when the item does not require staff.")

    model_config = {"from_attributes": True}


class SlotsRangeResponse(BaseModel):
    """Available slots for a date range."""
    bookable_item_id: int
    start_date: date
    end_date: date
    timezone: str
    duration_minutes: int
    slots: list[SlotRead]

    model_config = {"from_attributes": True}
