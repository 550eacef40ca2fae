# file: app/schema.py
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

class BookingStatus(str, Enum):
    PENDING = "pending"
    BOOKED = "booked"
    DONE = "done"
    CANCELLED = "cancelled"

class EventKind(str, Enum):
    INTAKE = "lead:intake"
    CREATED = "lead:created"
    UPDATED = "lead:updated"
    STATUS_UPDATED = "lead:status_updated"
    ACTIVITY = "lead:activity"
    CALL_LOGGED = "call:logged"
    ASSIGNED = "leads:assigned"

# Precedence when a lead carries several bookings of one kind
_BOOKING_PRECEDENCE = [
    BookingStatus.DONE, BookingStatus.BOOKED,
    BookingStatus.PENDING, BookingStatus.CANCELLED,
]

class FieldValue(BaseModel):
    name: str
    values: List[Any] = []

    @field_validator("values", mode="before")
    @classmethod
    def _as_list(cls, v):
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            return list(v)
        return [v]

class Booking(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    date: Optional[datetime] = None
    hospital: str = ""
    doctor: str = ""
    remarks: str = ""

def derive_booking_status(bookings: List[Booking]) -> Optional[BookingStatus]:
    """Collapse a list of bookings into the single status shown in the table."""
    present = {b.status for b in bookings}
    for status in _BOOKING_PRECEDENCE:
        if status in present:
            return status
    return None

class Lead(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    lead_id: Optional[str] = None
    field_data: List[FieldValue] = []
    # Stages are configured on the server and carried verbatim
    status: Optional[str] = None
    assigned_to: Optional[str] = None
    campaign_id: Optional[str] = None
    created_time: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_call_at: Optional[datetime] = None
    follow_up_at: Optional[datetime] = None
    call_count: int = 0
    op_bookings: List[Booking] = []
    ip_bookings: List[Booking] = []

    def read_field(self, keys: List[str]) -> Optional[str]:
        for f in self.field_data:
            k = "_".join((f.name or "").lower().split())
            if k in keys and f.values and f.values[0]:
                return str(f.values[0])
        return None

    @property
    def key(self) -> str:
        return self.id or self.lead_id or ""

    @property
    def name(self) -> Optional[str]:
        return (self.read_field(["full_name", "lead_name", "name"])
                or self.read_field(["first_name"]))

    @property
    def phone(self) -> Optional[str]:
        return self.read_field(["phone_number", "phone", "mobile", "contact_number"])

    @property
    def opd_status(self) -> Optional[BookingStatus]:
        return derive_booking_status(self.op_bookings)

    @property
    def ipd_status(self) -> Optional[BookingStatus]:
        return derive_booking_status(self.ip_bookings)

class Agent(BaseModel):
    id: str
    name: str = ""
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

class PushEvent(BaseModel):
    kind: EventKind
    payload: Dict[str, Any] = {}

    @property
    def dedupe_key(self) -> str:
        from live.events import dedupe_key
        return dedupe_key(self.kind, self.payload)

class PageResult(BaseModel):
    records: List[Lead] = []
    page: int = 1
    limit: int = 20
    total: int = 0
    total_pages: int = 1

class FeedEvent(BaseModel):
    ts: datetime
    type: str  # notification
    source: str
    message: str
    payload: Dict[str, Any] = {}

class ViewRequest(BaseModel):
    filters: Dict[str, Any] = {}
    page: int = Field(1, ge=1)
    page_size: Optional[int] = Field(None, ge=1, le=500)

class EqualSplitRequest(BaseModel):
    pool_size: int = Field(..., ge=0)
    agent_ids: List[str]
    mode: str = "count"

class AllocationRequest(BaseModel):
    pool_size: int = Field(..., ge=0)
    agent_ids: List[str]
    mode: str = "count"  # count, percentage
    values: Dict[str, Union[int, float]] = {}

class AssignmentRequest(BaseModel):
    lead_ids: List[str]
    agent_ids: List[str]
    mode: str = "count"
    values: Dict[str, Union[int, float]] = {}

class SmartAssignRequest(BaseModel):
    lead_ids: List[str]
    agent_ids: List[str]

class DistributionForm(BaseModel):
    agent_ids: List[str]
    mode: str = "count"
    values: Dict[str, Union[int, float]] = {}

class BulkUpdateRequest(BaseModel):
    lead_ids: List[str]
    updates: Dict[str, Any] = {}  # status, fieldData
    distribution: Optional[DistributionForm] = None

class BulkUpdateByFilterRequest(BaseModel):
    filters: Dict[str, Any] = {}
    updates: Dict[str, Any]
