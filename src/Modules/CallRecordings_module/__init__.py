"""
CallRecordings Module
=====================

Moduł synchronizacji nagrań rozmów telefonicznych:
- Skanowanie folderu z nagraniami (metadane z nazw plików, długość z kontenera)
- Dopasowanie nagrań do rekordów call-log na serwerze (numer + okno ±120 s)
- Idempotentny, wznawialny upload nagrań (stan w lokalnej bazie SQLite)
- Synchronizacja rejestru połączeń urządzenia
"""

__version__ = "1.0.0"
__author__ = "PRO-Ka-Po Team"

from .recording_models import (
    CallType,
    RecordingFile,
    ParsedRecordingMeta,
    CallLogRecord,
    DeviceCallLogEntry,
    SyncState,
    SyncReport,
    SyncSettings,
)

from .filename_parser import parse_recording_filename, format_phone_number
from .duration_resolver import build_identity_key, resolve_duration
from .source_scanner import FolderScanner, compute_sync_stats, detect_new_recordings
from .sync_state_store import SyncStateStore, RECORDINGS_NAMESPACE, CALL_LOGS_NAMESPACE
from .call_log_matcher import find_matching_call_log

from .recording_api_client import RecordingsAPIClient, APIResponse
from .recordings_sync_manager import (
    RecordingsSyncManager,
    SyncInProgressError,
    MissingUserIdentityError,
)
from .call_log_sync_manager import CallLogSyncManager, load_call_log_export
from .auto_sync_scheduler import AutoSyncScheduler

__all__ = [
    # Models
    'CallType',
    'RecordingFile',
    'ParsedRecordingMeta',
    'CallLogRecord',
    'DeviceCallLogEntry',
    'SyncState',
    'SyncReport',
    'SyncSettings',

    # Parsing / scanning
    'parse_recording_filename',
    'format_phone_number',
    'build_identity_key',
    'resolve_duration',
    'FolderScanner',
    'compute_sync_stats',
    'detect_new_recordings',

    # State
    'SyncStateStore',
    'RECORDINGS_NAMESPACE',
    'CALL_LOGS_NAMESPACE',

    # Matching / sync
    'find_matching_call_log',
    'RecordingsAPIClient',
    'APIResponse',
    'RecordingsSyncManager',
    'SyncInProgressError',
    'MissingUserIdentityError',
    'CallLogSyncManager',
    'load_call_log_export',
    'AutoSyncScheduler',
]
