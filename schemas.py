from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from errors import BadInput


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value) -> "RequestStatus":
        """Accept the canonical values and the legacy Spanish spellings."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        key = LEGACY_STATUS_NAMES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise BadInput(f"Invalid status: {value}") from None


LEGACY_STATUS_NAMES = {
    "pendiente": "pending",
    "aprobada": "approved",
    "rechazada": "rejected",
}


class Employee(BaseModel):
    id: str
    name: str
    department: str
    email: EmailStr
    is_admin: bool = False
    hire_date: date
    # never returned in responses
    password_hash: Optional[str] = Field(default=None, exclude=True, repr=False)

    # derived, never stored
    tenure_years: Optional[int] = None
    allotted_days: Optional[int] = None
    consumed_days: Optional[int] = None
    available_days: Optional[int] = None

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None


class VacationRequest(BaseModel):
    id: str
    employee_id: str
    employee_name: str
    start_date: date
    end_date: date
    status: RequestStatus = RequestStatus.PENDING
    requested_days: int
    created_at: datetime


class RequestCreate(BaseModel):
    employee_id: Optional[str] = None  # defaults to the logged-in employee
    start_date: str
    end_date: str


class StatusUpdate(BaseModel):
    status: str


class RequestCounts(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class RequestListing(BaseModel):
    status_filter: Optional[RequestStatus] = None
    counts: RequestCounts
    requests: List[VacationRequest]
