"""Plain record types shared by every storage backend."""

from dataclasses import dataclass
from datetime import date, datetime, timezone

HISTORY_STATUSES = ("active", "resolved", "chronic")

GRANT_PENDING = "pending"
GRANT_ACCEPTED = "accepted"
GRANT_REJECTED = "rejected"
GRANT_STATUSES = (GRANT_PENDING, GRANT_ACCEPTED, GRANT_REJECTED)

ACCESS_REQUEST = "access_request"
ACCESS_RESPONSE = "access_response"
NOTIFICATION_TYPES = (ACCESS_REQUEST, ACCESS_RESPONSE)


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form every timestamp is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class Account:
    id: int
    username: str
    password_hash: str
    full_name: str
    date_of_birth: date
    gender: str
    blood_type: str | None = None
    is_doctor: bool = False
    license_number: str | None = None
    specialization: str | None = None
    hospital: str | None = None


@dataclass
class MedicalHistoryEntry:
    id: int
    user_id: int
    condition: str
    diagnosis_date: date
    status: str
    notes: str | None = None


@dataclass
class VaccineEntry:
    id: int
    user_id: int
    name: str
    date_administered: date
    provider: str | None = None
    batch_number: str | None = None
    next_due_date: date | None = None


@dataclass
class FamilyMember:
    id: int
    user_id: int
    name: str
    relationship: str
    date_of_birth: date
    has_access: bool = False


@dataclass
class AccessGrant:
    id: int
    patient_id: int
    doctor_id: int
    granted_at: datetime
    status: str = GRANT_PENDING
    is_active: bool = False
    expires_at: datetime | None = None

    def authorizes(self, now: datetime) -> bool:
        """True when this grant currently opens the patient's records to the doctor."""
        if self.status != GRANT_ACCEPTED or not self.is_active:
            return False
        return self.expires_at is None or self.expires_at > now


@dataclass
class Notification:
    id: int
    user_id: int
    title: str
    message: str
    type: str
    created_at: datetime
    related_id: int | None = None
    is_read: bool = False
