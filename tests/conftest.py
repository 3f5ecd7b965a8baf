"""
Pytest fixtures for call recordings sync tests
"""
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.Modules.CallRecordings_module.recording_api_client import APIResponse
from src.Modules.CallRecordings_module.recording_models import (
    CallLogRecord,
    CallType,
    RecordingFile,
    SyncSettings,
)
from src.Modules.CallRecordings_module.sync_state_store import SyncStateStore, CALL_LOGS_NAMESPACE


class FakeRecordingsAPI:
    """In-memory stand-in for RecordingsAPIClient"""

    def __init__(self, candidates: Optional[List[CallLogRecord]] = None):
        self.candidates = candidates or []
        self.fetch_fails = False
        self.failing_files = set()
        self.failing_calls = set()
        self.uploads = []
        self.call_log_payloads = []
        self.upload_gate: Optional[threading.Event] = None
        self._lock = threading.Lock()

    def get_call_logs_with_recordings(self, user_id, limit=200, offset=0):
        if self.fetch_fails:
            return APIResponse(success=False, error="Connection refused")
        return APIResponse(success=True, data=list(self.candidates), status_code=200)

    def upload_recording(self, recording, user_id, call_log_id=None):
        if self.upload_gate is not None:
            self.upload_gate.wait(timeout=5)
        with self._lock:
            self.uploads.append((recording.file_name, call_log_id))
        if recording.file_name in self.failing_files:
            return APIResponse(success=False, error="Server error", status_code=500)
        return APIResponse(
            success=True,
            data={'matched': call_log_id is not None, 'call_log_id': call_log_id, 'file_url': None},
            status_code=200,
        )

    def sync_call_log(self, payload):
        with self._lock:
            self.call_log_payloads.append(payload)
        if payload['callid'] in self.failing_calls:
            return APIResponse(success=False, error="Task sync_call_log failed")
        return APIResponse(success=True, data=None, status_code=200)

    def get_call_logs(self, user_id, limit=100, offset=0):
        return APIResponse(success=True, data=[dict(p) for p in self.call_log_payloads], status_code=200)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "recordings_sync.db"


@pytest.fixture
def store(db_path):
    """Fresh recordings sync state"""
    return SyncStateStore(db_path)


@pytest.fixture
def call_log_store(db_path):
    return SyncStateStore(db_path, CALL_LOGS_NAMESPACE)


@pytest.fixture
def fake_api():
    return FakeRecordingsAPI()


@pytest.fixture
def sync_settings():
    return SyncSettings(user_id="42")


@pytest.fixture
def recordings_dir(tmp_path):
    folder = tmp_path / "recordings"
    folder.mkdir()
    return folder


def make_recording(
    file_name: str,
    phone: str = "919812345678",
    captured_at: Optional[datetime] = datetime(2024, 1, 15, 14, 30, 22),
    size_bytes: int = 1024,
    file_path: str = "",
) -> RecordingFile:
    """Build an inventory entry without touching the filesystem"""
    return RecordingFile(
        file_name=file_name,
        file_path=file_path or f"/tmp/{file_name}",
        size_bytes=size_bytes,
        raw_phone_number=phone,
        call_type=CallType.INCOMING,
        captured_at=captured_at,
        captured_at_raw=captured_at.strftime("%Y-%m-%d %H:%M:%S") if captured_at else "",
    )


def make_call_log(
    log_id: str,
    phone: str = "+91 98123 45678",
    start_time: Optional[datetime] = datetime(2024, 1, 15, 14, 30, 22),
    recording_url: str = "",
    customer_id: str = "",
) -> CallLogRecord:
    return CallLogRecord(
        id=log_id,
        phone_number=phone,
        customer_id=customer_id,
        start_time=start_time,
        recording_url=recording_url,
    )
