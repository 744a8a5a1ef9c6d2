# ticketing/models/booking.py
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    FAILED = "failed"


class Booking(BaseModel):
    id: str
    event_id: str
    pass_id: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: str = "N/A"
    quantity: int = 1
    total_amount: float
    currency: str = "INR"
    payment_id: str
    order_id: Optional[str] = None
    ticket_id: Optional[str] = None
    status: BookingStatus = BookingStatus.CONFIRMED
    referral_code: Optional[str] = None
    discount_amount: Optional[float] = None
    original_amount: Optional[float] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AnalyticsRecord(BaseModel):
    booking_id: str
    event_id: str
    revenue: float
    commission: float = 0.0
    date: str


class TicketData(BaseModel):
    """Everything printed on a ticket and quoted in the confirmation email."""

    booking_id: str
    ticket_id: str
    event_id: str
    pass_id: Optional[str] = None
    event_title: str
    event_date: str
    event_time: str
    event_venue: str
    customer_name: str
    customer_email: str
    customer_phone: str = ""
    pass_type: str = "Standard"
    quantity: int = 1
    total_amount: float
    original_amount: Optional[float] = None
    discount_amount: float = 0.0
    referral_code: str = ""
    day_number: int = 1
    day_title: Optional[str] = None
    is_multi_day: bool = False
    event_duration: Optional[str] = None
