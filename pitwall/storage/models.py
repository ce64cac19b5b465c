"""
Data models for tracked job applications.
"""
import datetime
import json
from enum import Enum
from typing import Any, List, Optional
from uuid import uuid4
from pydantic import BaseModel, Field

class ApplicationStatus(str, Enum):
    """Job application status."""
    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    OFFER = "Offer"
    REJECTED = "Rejected"

STATUSES = [status.value for status in ApplicationStatus]

def new_record_id() -> str:
    """Generate a fresh opaque record id."""
    return uuid4().hex

class ApplicationDraft(BaseModel):
    """Form payload for creating or editing an application."""
    company: str = ""
    role: str = ""
    source: str = ""
    status: ApplicationStatus = ApplicationStatus.APPLIED
    date: datetime.date = Field(default_factory=datetime.date.today)
    notes: str = ""

    def trimmed(self) -> "ApplicationDraft":
        """Return a copy with company and role stripped of whitespace."""
        return self.model_copy(update={
            "company": self.company.strip(),
            "role": self.role.strip(),
        })

class ApplicationRecord(BaseModel):
    """One tracked job application."""
    id: str = Field(default_factory=new_record_id)
    company: str = ""
    role: str = ""
    source: str = ""
    status: ApplicationStatus = ApplicationStatus.APPLIED
    date: datetime.date = Field(default_factory=datetime.date.today)
    notes: str = ""

    def to_draft(self) -> ApplicationDraft:
        """Pre-fill a draft from this record."""
        return ApplicationDraft(**self.model_dump(exclude={"id"}))

class Account(BaseModel):
    """Signed-in account derived from a verified identity token."""
    email: str
    name: str
    picture: str = ""

TEXT_FIELDS = ("company", "role", "source", "notes")

def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)

def _coerce_status(value: Any) -> ApplicationStatus:
    if isinstance(value, str):
        for status in ApplicationStatus:
            if status.value.lower() == value.strip().lower():
                return status
    return ApplicationStatus.APPLIED

def _coerce_date(value: Any) -> datetime.date:
    if isinstance(value, str):
        try:
            # Accept full timestamps too, only the day is kept
            return datetime.date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    return datetime.date.today()

def coerce_record(entry: Any) -> ApplicationRecord:
    """Build a record from a decoded JSON entry, field by field.

    Text fields that are missing or null become empty and other scalars are
    converted with ``str``. An unknown status becomes Applied, a blank or
    unparsable date becomes today and a blank id gets a fresh one.

    Raises:
        ValueError: If the entry is not an object
    """
    if not isinstance(entry, dict):
        raise ValueError(f"Expected an object, got {type(entry).__name__}")
    data = {field: _coerce_text(entry.get(field)) for field in TEXT_FIELDS}
    record_id = _coerce_text(entry.get("id")).strip()
    return ApplicationRecord(
        id=record_id or new_record_id(),
        status=_coerce_status(entry.get("status")),
        date=_coerce_date(entry.get("date")),
        **data,
    )

def coerce_record_list(data: Any) -> List[ApplicationRecord]:
    """Coerce a decoded JSON array into records.

    Duplicate ids are replaced with fresh ones so ids stay unique.

    Raises:
        ValueError: If ``data`` is not a list or an entry is not an object
    """
    if not isinstance(data, list):
        raise ValueError(f"Expected an array, got {type(data).__name__}")
    records = []
    seen_ids = set()
    for index, entry in enumerate(data):
        try:
            record = coerce_record(entry)
        except ValueError as e:
            raise ValueError(f"Entry {index}: {e}") from e
        if record.id in seen_ids:
            record.id = new_record_id()
        seen_ids.add(record.id)
        records.append(record)
    return records

def find_record(records: List[ApplicationRecord], record_id: str) -> Optional[int]:
    """Return the index of the record with ``record_id``, if any."""
    for i, record in enumerate(records):
        if record.id == record_id:
            return i
    return None
