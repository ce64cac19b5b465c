"""
Filtering, sorting and counting over application records.
"""
import unicodedata
from enum import Enum
from typing import Dict, List
from pydantic import BaseModel, field_validator

from ..storage.models import ApplicationRecord, STATUSES

STATUS_ALL = "All"

class SortMode(str, Enum):
    """Ordering of the visible records."""
    DATE_DESC = "dateDesc"
    DATE_ASC = "dateAsc"
    COMPANY_ASC = "companyAsc"
    COMPANY_DESC = "companyDesc"

class QueryState(BaseModel):
    """Current search, status filter and sort mode."""
    query: str = ""
    status_filter: str = STATUS_ALL
    sort_by: SortMode = SortMode.DATE_DESC

    @field_validator("status_filter")
    @classmethod
    def _known_status(cls, value: str) -> str:
        if value != STATUS_ALL and value not in STATUSES:
            raise ValueError(f"Unknown status filter: {value}")
        return value

class QueryResult(BaseModel):
    """Derived view of the collection."""
    visible: List[ApplicationRecord]
    hidden_count: int
    counts: Dict[str, int]

def _haystack(record: ApplicationRecord) -> str:
    return f"{record.company} {record.role} {record.source} {record.status.value} {record.notes}".lower()

def matches_query(record: ApplicationRecord, query: str) -> bool:
    """Case-insensitive substring match over the record's text fields."""
    q = query.strip().lower()
    if not q:
        return True
    return q in _haystack(record)

def matches_status(record: ApplicationRecord, status_filter: str) -> bool:
    if status_filter == STATUS_ALL:
        return True
    return record.status.value == status_filter

def company_sort_key(company: str) -> str:
    """Collation key ignoring case and accents, so "école" sorts with "ecole"."""
    decomposed = unicodedata.normalize("NFKD", company)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()

def sort_records(records: List[ApplicationRecord], sort_by: SortMode) -> List[ApplicationRecord]:
    """Return ``records`` ordered by ``sort_by``. Ties keep their input order."""
    if sort_by in (SortMode.COMPANY_ASC, SortMode.COMPANY_DESC):
        return sorted(
            records,
            key=lambda r: company_sort_key(r.company),
            reverse=sort_by == SortMode.COMPANY_DESC,
        )
    return sorted(records, key=lambda r: r.date, reverse=sort_by == SortMode.DATE_DESC)

def count_by_status(records: List[ApplicationRecord]) -> Dict[str, int]:
    """Total plus one count per status."""
    counts = {"total": len(records)}
    for status in STATUSES:
        counts[status] = sum(1 for r in records if r.status.value == status)
    return counts

def run_query(records: List[ApplicationRecord], state: QueryState) -> QueryResult:
    """Derive the visible records, hidden count and counts.

    Args:
        records: Full, unfiltered collection
        state: Query to apply

    Returns:
        QueryResult whose counts ignore ``state``
    """
    subset = [
        r for r in records
        if matches_query(r, state.query) and matches_status(r, state.status_filter)
    ]
    visible = sort_records(subset, state.sort_by)
    return QueryResult(
        visible=visible,
        hidden_count=max(0, len(records) - len(visible)),
        counts=count_by_status(records),
    )
