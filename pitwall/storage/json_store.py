"""
JSON record store persisted through local storage.
"""
from collections import Counter
from datetime import datetime
import json
import logging
import random
import shutil
from pathlib import Path
from typing import List, Optional

from .local_store import LocalStorage
from .models import Account, ApplicationDraft, ApplicationRecord, coerce_record_list, find_record, new_record_id

logger = logging.getLogger(__name__)

STORAGE_KEY_PREFIX = "job-tracker-items"
UNREADABLE_SUFFIX = "-unreadable"

class RecordValidationError(ValueError):
    """Raised when a draft is missing a required field."""

def storage_key(account: Optional[Account] = None) -> str:
    """Derive the storage key for an account.

    Args:
        account: Signed-in account, or None for the no-authentication key

    Returns:
        ``job-tracker-items-<email>`` with the email lowercased, or the bare
        prefix when there is no account
    """
    if account is None:
        return STORAGE_KEY_PREFIX
    return f"{STORAGE_KEY_PREFIX}-{account.email.lower()}"

def validate_draft(draft: ApplicationDraft) -> ApplicationDraft:
    """Trim a draft and check its required fields.

    Raises:
        RecordValidationError: If company or role is empty after trimming
    """
    draft = draft.trimmed()
    if not draft.company or not draft.role:
        raise RecordValidationError("Company and Role are required")
    return draft

class RecordStore:
    """Holds one account's application records and mirrors them to storage."""

    def __init__(self, storage: LocalStorage):
        """Initialize a closed store.

        Args:
            storage: Backing key/value storage
        """
        self.storage = storage
        self.key: Optional[str] = None
        self._records: List[ApplicationRecord] = []

    @property
    def is_open(self) -> bool:
        return self.key is not None

    @property
    def records(self) -> List[ApplicationRecord]:
        """Copy of the current collection, newest first."""
        return [record.model_copy() for record in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def open(self, key: str) -> List[ApplicationRecord]:
        """Drop the in-memory collection and load the one stored under ``key``.

        Args:
            key: Storage key, see ``storage_key``

        Returns:
            The loaded records
        """
        self._records = []
        self.key = key
        self._records = self._load()
        logger.info("Loaded %d records", len(self._records))
        return self.records

    def close(self):
        """Forget the current collection without touching storage."""
        self.key = None
        self._records = []

    def _load(self) -> List[ApplicationRecord]:
        """Read the stored blob, degrading to an empty collection."""
        raw = self.storage.get_item(self.key)
        if raw is None:
            return []
        try:
            return coerce_record_list(json.loads(raw))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            # Keep the unreadable blob aside, the next save overwrites the key
            aside = f"{self.key}{UNREADABLE_SUFFIX}"
            self.storage.set_item(aside, raw)
            logger.warning("Ignoring unreadable stored records, kept under %s: %s", aside, e)
            return []

    def _require_open(self):
        if self.key is None:
            raise RuntimeError("Record store is not open")

    def _save(self):
        """Persist the full collection."""
        payload = [record.model_dump(mode="json") for record in self._records]
        self.storage.set_item(self.key, json.dumps(payload))

    def get(self, record_id: str) -> Optional[ApplicationRecord]:
        """Get a record by id."""
        index = find_record(self._records, record_id)
        if index is None:
            return None
        return self._records[index].model_copy()

    def create(self, draft: ApplicationDraft) -> ApplicationRecord:
        """Validate a draft and add it at the front of the collection.

        Args:
            draft: Form payload

        Returns:
            The stored record with its new id

        Raises:
            RecordValidationError: If company or role is empty after trimming
        """
        self._require_open()
        draft = validate_draft(draft)
        existing_ids = {record.id for record in self._records}
        record_id = new_record_id()
        while record_id in existing_ids:
            record_id = new_record_id()
        record = ApplicationRecord(id=record_id, **draft.model_dump())
        self._records.insert(0, record)
        self._save()
        logger.debug("Created record %s", record.id)
        return record.model_copy()

    def update(self, record_id: str, draft: ApplicationDraft) -> Optional[ApplicationRecord]:
        """Replace the fields of an existing record.

        Args:
            record_id: Id of the record to replace
            draft: New field values

        Returns:
            The updated record, or None if no record has ``record_id``

        Raises:
            RecordValidationError: If company or role is empty after trimming
        """
        self._require_open()
        draft = validate_draft(draft)
        index = find_record(self._records, record_id)
        if index is None:
            return None
        record = ApplicationRecord(id=record_id, **draft.model_dump())
        self._records[index] = record
        self._save()
        logger.debug("Updated record %s", record_id)
        return record.model_copy()

    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns whether anything was removed."""
        self._require_open()
        index = find_record(self._records, record_id)
        if index is None:
            return False
        del self._records[index]
        self._save()
        logger.debug("Deleted record %s", record_id)
        return True

    def replace_all(self, records: List[ApplicationRecord]):
        """Replace the whole collection, e.g. after an import."""
        self._require_open()
        self._records = [record.model_copy() for record in records]
        self._save()
        logger.info("Replaced collection with %d records", len(self._records))

    def backup(self, backup_dir: str = "data/backups", max_backups: int = 5) -> Path:
        """Create a backup of the current collection.

        Args:
            backup_dir: Directory to store backups
            max_backups: Maximum number of backups to keep

        Returns:
            Path of the new backup directory
        """
        self._require_open()
        backup_path = Path(backup_dir)
        backup_path.mkdir(parents=True, exist_ok=True)

        # Create timestamped backup directory with random suffix
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        random_suffix = ''.join(random.choices('0123456789abcdef', k=4))
        target = backup_path / f"backup_{timestamp}_{random_suffix}"
        target.mkdir()

        source = self.storage.path_for(self.key)
        if not source.exists():
            self._save()
        shutil.copy2(source, target / "records.json")

        status_counts = Counter(record.status.value for record in self._records)
        backup_info = {
            "timestamp": timestamp,
            "random_suffix": random_suffix,
            "storage_key": self.key,
            "num_records": len(self._records),
            "status_counts": dict(status_counts),
        }
        with open(target / "backup_info.json", 'w') as f:
            json.dump(backup_info, f, indent=2)

        self._cleanup_old_backups(backup_path, max_backups)
        logger.info("Backed up %d records to %s", len(self._records), target)
        return target

    def _cleanup_old_backups(self, backup_dir: Path, max_backups: int):
        """Remove old backups if exceeding max_backups limit."""
        backup_dirs = sorted(
            [d for d in backup_dir.iterdir() if d.is_dir() and d.name.startswith("backup_")],
            key=lambda x: x.stat().st_mtime_ns
        )

        while len(backup_dirs) > max_backups:
            shutil.rmtree(backup_dirs.pop(0))

    def restore_from_backup(self, backup_dir: str) -> List[ApplicationRecord]:
        """Restore the collection from a backup.

        Args:
            backup_dir: Path to backup directory to restore from

        Raises:
            ValueError: If the backup is missing or unreadable
        """
        self._require_open()
        backup_path = Path(backup_dir)
        if not backup_path.exists():
            raise ValueError(f"Backup directory not found: {backup_dir}")

        with open(backup_path / "records.json", 'r', encoding='utf-8') as f:
            records = coerce_record_list(json.load(f))
        self.replace_all(records)
        return self.records
