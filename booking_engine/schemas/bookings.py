# booking_engine/schemas/bookings.py

from datetime import datetime, timezone
from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator

BookingStatus = Literal["pending", "confirmed", "cancelled", "completed"]


class BookingCreate(BaseModel):
    business_id: int
    bookable_item_id: int
    customer_id: int

    date_start: datetime
    date_end: datetime

    unit_count: int = Field(default=1, ge=1)

    notes: Optional[str] = None

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def check_interval(self):
        if self.date_start.tzinfo is None or self.date_end.tzinfo is None:
            raise ValueError("date_start and date_end must include a timezone")
        if self.date_start.microsecond or self.date_end.microsecond:
            raise ValueError("date_start and date_end must be whole seconds")
        # Compare instants; same-tzinfo datetimes compare by wall clock.
        if self.date_end.astimezone(timezone.utc) <= self.date_start.astimezone(timezone.utc):
            raise ValueError("date_end must be after date_start")
        return self


class BookingCancel(BaseModel):
    cancel_reason: Optional[str] = None


class BookingRead(BaseModel):
    id: int

    business_id: int
    bookable_item_id: int
    customer_id: int
    staff_id: Optional[int] = None

    date_start: datetime
    date_end: datetime

    unit_count: int
    status: BookingStatus
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}
