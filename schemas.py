"""
Record schemas for the optical front desk.

Each entity model maps to one persisted collection (``patients``, ``orders``,
``invoices``, ``appointments``, ``messages``). Records are stored with
camelCase keys; Python code uses the snake_case attribute names.
The ``*In`` models describe what a caller must supply to create a record.
"""
import math
import re
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

OrderStatus = Literal["active", "completed"]
AppointmentStatus = Literal["confirmed", "pending"]

_LEADING_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def parse_amount(value: Any) -> float:
    """Parse a price/amount the way a browser form does.

    Takes the longest leading numeric prefix ("12.5abc" -> 12.5); anything
    without one becomes NaN. NaN is kept, not rejected.
    """
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if text.lower().lstrip("+-").startswith("infinity"):
        return -math.inf if text.startswith("-") else math.inf
    m = _LEADING_NUMBER.match(text)
    if not m:
        return math.nan
    return float(m.group(0))


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Persisted entities
class Patient(Record):
    id: str
    name: str = ""
    phone: str = ""
    email: Optional[str] = None
    birth_date: str = ""
    address: str = ""
    created_at: Optional[datetime] = None


class Order(Record):
    id: str
    patient_id: str = ""
    lens_type: str = ""
    material: Optional[str] = None
    price: Optional[float] = None  # null after a NaN price is persisted
    notes: Optional[str] = None
    status: OrderStatus = "active"
    created_at: Optional[datetime] = None


class Invoice(Record):
    id: str
    number: str
    patient_id: str = ""
    concept: str = ""
    amount: Optional[float] = None
    payment_method: str = ""
    date: str = ""
    status: str = "paid"


class Appointment(Record):
    id: str
    patient_id: str = ""
    date: str = ""
    time: str = ""
    type: str = ""
    notes: Optional[str] = None
    status: AppointmentStatus = "confirmed"
    created_at: Optional[datetime] = None


class Message(Record):
    id: str
    patient_id: str = ""
    patient_name: str = ""  # snapshot at send time
    phone: str = ""  # snapshot at send time
    message: str = ""
    type: str = ""
    sent_at: Optional[datetime] = None
    status: str = "sent"


# Inputs
class PatientIn(Record):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    birth_date: str = ""
    address: str = ""


class OrderIn(Record):
    patient_id: str = Field(..., min_length=1)
    lens_type: str = Field(..., min_length=1)
    material: Optional[str] = None
    price: float
    notes: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v):
        return parse_amount(v)


class InvoiceIn(Record):
    patient_id: str = Field(..., min_length=1)
    concept: str = Field(..., min_length=1)
    amount: float
    payment_method: str = Field(..., min_length=1)

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, v):
        return parse_amount(v)


class AppointmentIn(Record):
    patient_id: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    notes: Optional[str] = None
    status: AppointmentStatus = "confirmed"


class WhatsAppIn(Record):
    patient_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
