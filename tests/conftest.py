"""
Shared pytest fixtures.
"""
import datetime

import jwt
import pytest

from pitwall.storage.local_store import LocalStorage
from pitwall.storage.json_store import RecordStore, storage_key
from pitwall.storage.models import Account, ApplicationDraft, ApplicationRecord, ApplicationStatus
from pitwall.utils.config import AuthSettings, TrackerSettings

TOKEN_SECRET = "test-secret-that-is-long-enough-for-hs256"
ALLOWED_EMAIL = "user@example.com"

@pytest.fixture
def make_token():
    """Sign payloads the way the identity provider would hand them over."""
    def _make(payload) -> str:
        return jwt.encode(payload, TOKEN_SECRET, algorithm="HS256")
    return _make

@pytest.fixture
def storage(tmp_path):
    """Local storage in a temporary directory."""
    return LocalStorage(str(tmp_path / "active"))

@pytest.fixture
def account():
    return Account(email="User@Example.com", name="Test User")

@pytest.fixture
def store(storage, account):
    """Record store opened for the test account."""
    record_store = RecordStore(storage)
    record_store.open(storage_key(account))
    return record_store

@pytest.fixture
def sample_draft():
    return ApplicationDraft(
        company="  Acme  ",
        role=" Backend Engineer ",
        source="LinkedIn",
        status=ApplicationStatus.INTERVIEWING,
        date=datetime.date(2024, 1, 5),
        notes="Phone screen went well",
    )

@pytest.fixture
def sample_records():
    return [
        ApplicationRecord(
            id="r1", company="Acme", role="Backend Engineer", source="LinkedIn",
            status=ApplicationStatus.APPLIED, date=datetime.date(2024, 1, 5), notes="",
        ),
        ApplicationRecord(
            id="r2", company="Beta", role="Data Scientist", source="Referral",
            status=ApplicationStatus.OFFER, date=datetime.date(2024, 3, 1), notes="Negotiating salary",
        ),
        ApplicationRecord(
            id="r3", company="cobalt", role="SRE", source="",
            status=ApplicationStatus.REJECTED, date=datetime.date(2023, 11, 20), notes="No \"culture fit\"",
        ),
    ]

@pytest.fixture
def auth_settings():
    return AuthSettings(client_id="client-123.apps.googleusercontent.com", allowed_email=ALLOWED_EMAIL)

@pytest.fixture
def tracker_settings(tmp_path, auth_settings):
    return TrackerSettings(
        auth=auth_settings,
        storage_dir=str(tmp_path / "active"),
        backup_dir=str(tmp_path / "backups"),
    )
