"""
Main interface for Pit Wall users.
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional
from pydantic import BaseModel

from ..auth.identity import AuthenticationError, IdentityGate, IdentityProvider
from ..query.engine import QueryResult, QueryState, SortMode, run_query
from ..storage.json_store import RecordStore, storage_key
from ..storage.local_store import LocalStorage
from ..storage.models import Account, ApplicationDraft, ApplicationRecord
from ..transfer.codec import (
    parse_records,
    read_import_file,
    records_to_csv,
    records_to_json,
    write_csv_export,
    write_json_export,
)
from ..utils.config import Config, TrackerSettings

logger = logging.getLogger(__name__)

class AppState(BaseModel):
    """Session state owned by a JobTracker."""
    account: Optional[Account] = None
    query: QueryState = QueryState()
    editing_id: Optional[str] = None
    auth_ready: bool = False
    auth_error: str = ""

class JobTracker:
    """Job application tracker session."""

    def __init__(
        self,
        settings: Optional[TrackerSettings] = None,
        storage_path: Optional[str] = None,
        identity_provider: Optional[IdentityProvider] = None
    ):
        """Initialize the tracker.

        Args:
            settings: Tracker settings. If None, read from the environment via Config
            storage_path: Optional override of the storage directory
            identity_provider: Optional identity provider client, mostly for tests
        """
        if settings is None:
            settings = Config().get_settings()
        self.settings = settings
        self.state = AppState()
        self.last_import_backup: Optional[Path] = None

        self._storage = LocalStorage(storage_path or settings.storage_dir)
        self._store = RecordStore(self._storage)

        if settings.require_auth:
            self._gate: Optional[IdentityGate] = IdentityGate(settings.auth, identity_provider)
        else:
            # Without authentication everything lives under one fixed key
            self._gate = None
            self._store.open(storage_key())

    @property
    def auth_enabled(self) -> bool:
        return self._gate is not None

    @property
    def setup_required(self) -> bool:
        """True when authentication is required but not configured."""
        return self._gate is not None and self._gate.setup_required

    @property
    def is_active(self) -> bool:
        """Whether records can be read and changed."""
        return self._store.is_open

    async def start(self) -> bool:
        """Load the identity provider client.

        Returns:
            Whether the tracker is usable or sign-in is available
        """
        if self._gate is None:
            self.state.auth_ready = True
            return True
        ready = await self._gate.start()
        self.state.auth_ready = ready
        if self._gate.load_error:
            self.state.auth_error = self._gate.load_error
        return ready

    def _reset_session(self):
        self.state.query = QueryState()
        self.state.editing_id = None

    def sign_in(self, credential: Optional[str]) -> Optional[Account]:
        """Handle the identity provider's credential callback.

        Args:
            credential: JWT from the provider

        Returns:
            The signed-in account, or None with ``state.auth_error`` set

        Raises:
            ConfigurationError: If authentication setup is incomplete
        """
        if self._gate is None:
            raise RuntimeError("Authentication is disabled")
        try:
            account = self._gate.authorize(credential)
        except AuthenticationError as e:
            self.state.auth_error = str(e)
            return None

        self.state.account = account
        self.state.auth_error = ""
        self._store.open(storage_key(account))
        self._reset_session()
        logger.info("Signed in as %s", account.email)
        return account

    def sign_out(self):
        """Clear the account and every bit of session state."""
        if self._gate is None:
            raise RuntimeError("Authentication is disabled")
        if self.state.account is not None:
            logger.info("Signed out %s", self.state.account.email)
        self._gate.sign_out()
        self._store.close()
        self.state.account = None
        self.state.auth_error = ""
        self._reset_session()

    @property
    def records(self) -> List[ApplicationRecord]:
        return self._store.records

    def view(self) -> QueryResult:
        """Visible records, hidden count and counts for the current query."""
        return run_query(self._store.records, self.state.query)

    def set_query(self, query: str):
        self.state.query = self.state.query.model_copy(update={"query": query})

    def set_status_filter(self, status_filter: str):
        self.state.query = QueryState(
            query=self.state.query.query,
            status_filter=status_filter,
            sort_by=self.state.query.sort_by,
        )

    def set_sort(self, sort_by: SortMode):
        self.state.query = self.state.query.model_copy(update={"sort_by": SortMode(sort_by)})

    def new_draft(self) -> ApplicationDraft:
        """Empty form."""
        return ApplicationDraft()

    def begin_edit(self, record_id: str) -> Optional[ApplicationDraft]:
        """Enter editing mode for a record and return its pre-filled draft."""
        record = self._store.get(record_id)
        if record is None:
            return None
        self.state.editing_id = record_id
        return record.to_draft()

    def cancel_edit(self):
        self.state.editing_id = None

    def submit(self, draft: ApplicationDraft) -> Optional[ApplicationRecord]:
        """Save the form: update the record being edited, or create a new one.

        Raises:
            RecordValidationError: If company or role is empty after trimming
        """
        if self.state.editing_id is not None:
            record = self._store.update(self.state.editing_id, draft)
        else:
            record = self._store.create(draft)
        self.state.editing_id = None
        return record

    def create(self, draft: ApplicationDraft) -> ApplicationRecord:
        return self._store.create(draft)

    def update(self, record_id: str, draft: ApplicationDraft) -> Optional[ApplicationRecord]:
        return self._store.update(record_id, draft)

    def delete(self, record_id: str, confirm: Optional[Callable[[], bool]] = None) -> bool:
        """Delete a record after an optional confirmation.

        Args:
            record_id: Record to delete
            confirm: Called before deleting; nothing happens if it returns False

        Returns:
            Whether a record was removed
        """
        if confirm is not None and not confirm():
            return False
        removed = self._store.delete(record_id)
        if removed and self.state.editing_id == record_id:
            self.state.editing_id = None
        return removed

    def export_json(self) -> str:
        return records_to_json(self._store.records)

    def export_csv(self) -> str:
        return records_to_csv(self._store.records)

    def save_json_export(self, directory: str = ".") -> Path:
        return write_json_export(self._store.records, directory)

    def save_csv_export(self, directory: str = ".") -> Path:
        return write_csv_export(self._store.records, directory)

    def import_json(self, text: str) -> List[ApplicationRecord]:
        """Replace the collection with the records in a JSON export.

        A non-empty collection is backed up first so an import can be undone
        with ``restore_from_backup``.

        Raises:
            ImportFormatError: If the document is not an array of records. The
                collection is left untouched.
        """
        if not self._store.is_open:
            raise RuntimeError("Record store is not open")
        records = parse_records(text)
        if len(self._store):
            self.last_import_backup = self._store.backup(self.settings.backup_dir)
        self._store.replace_all(records)
        self.state.editing_id = None
        return self._store.records

    async def import_file(self, path: str) -> List[ApplicationRecord]:
        """Read a user-selected JSON export and import it."""
        text = await read_import_file(path)
        return self.import_json(text)

    def backup(self, max_backups: int = 5) -> Path:
        return self._store.backup(self.settings.backup_dir, max_backups)

    def restore_from_backup(self, backup_dir: str) -> List[ApplicationRecord]:
        return self._store.restore_from_backup(backup_dir)
