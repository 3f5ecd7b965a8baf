"""
Recording Models - Modele danych dla nagrań rozmów i rekordów call-log
"""
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Set, Union, Dict, Any
import re
from loguru import logger

from .duration_resolver import build_identity_key


# Format czasu używany w nazwach plików po sparsowaniu i w API ("2024-01-15 14:30:22")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_NON_DIGITS = re.compile(r"\D")


class CallType(Enum):
    """Typ połączenia wykryty w nazwie pliku nagrania"""
    INCOMING = "Incoming"
    OUTGOING = "Outgoing"
    MISSED = "Missed"
    RECORDED_CALL = "Recorded Call"
    UNKNOWN = "Unknown"


def digits_only(value: Optional[str]) -> str:
    """Usuń wszystko poza cyframi (None -> "")"""
    if not value:
        return ""
    return _NON_DIGITS.sub("", str(value))


def parse_datetime_field(value: Union[str, datetime, int, float, None]) -> Optional[datetime]:
    """
    Uniwersalna funkcja do parsowania pól datetime z API.

    Args:
        value: String ("YYYY-MM-DD HH:MM:SS" lub ISO), datetime, epoch ms lub None

    Returns:
        Naive datetime (czas lokalny) lub None
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError) as e:
            logger.warning(f"[Recordings] Failed to parse epoch: {value}, error: {e}")
            return None

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
            if parsed.tzinfo is not None:
                # Porównujemy z czasem lokalnym z nazw plików
                parsed = parsed.astimezone().replace(tzinfo=None)
            return parsed
        except ValueError as e:
            logger.warning(f"[Recordings] Failed to parse datetime: {value}, error: {e}")
            return None

    return None


@dataclass
class ParsedRecordingMeta:
    """Wynik parsowania nazwy pliku (best-effort, nigdy nie rzuca wyjątku)"""
    file_name: str
    raw_phone_number: str = ""
    display_phone_number: str = "Unknown"
    call_type: CallType = CallType.RECORDED_CALL
    captured_at: Optional[datetime] = None
    captured_at_raw: str = ""           # "YYYY-MM-DD HH:MM:SS" albo ""
    date_label: str = "Unknown Date"    # "15 Jan 2024"
    time_label: str = "Unknown Time"    # "02:30:22 PM"


@dataclass
class RecordingFile:
    """
    Nagranie audio znalezione na urządzeniu (jeden wpis inwentarza skanu).

    UWAGA: synced i matched_call_log_id NIE są zapisywane w pliku ani w bazie -
    synced wynika z SyncStateStore, matched_call_log_id ustawia matcher/upload.
    """
    file_name: str
    file_path: str
    size_bytes: int
    raw_phone_number: str = ""
    display_phone_number: str = "Unknown"
    call_type: CallType = CallType.RECORDED_CALL
    captured_at: Optional[datetime] = None
    captured_at_raw: str = ""
    date_label: str = "Unknown Date"
    time_label: str = "Unknown Time"
    duration_millis: int = 0

    # Stan synchronizacji (tylko w pamięci)
    synced: bool = False
    matched_call_log_id: Optional[str] = None

    @property
    def identity_key(self) -> str:
        """Stabilny klucz pliku: nazwa + rozmiar + surowy timestamp"""
        return build_identity_key(self.file_name, self.size_bytes, self.captured_at_raw)

    @property
    def matched_to_call_log(self) -> bool:
        return self.matched_call_log_id is not None

    @classmethod
    def from_parsed(cls, meta: ParsedRecordingMeta, file_path: str, size_bytes: int,
                    duration_millis: int = 0) -> 'RecordingFile':
        return cls(
            file_name=meta.file_name,
            file_path=file_path,
            size_bytes=size_bytes,
            raw_phone_number=meta.raw_phone_number,
            display_phone_number=meta.display_phone_number,
            call_type=meta.call_type,
            captured_at=meta.captured_at,
            captured_at_raw=meta.captured_at_raw,
            date_label=meta.date_label,
            time_label=meta.time_label,
            duration_millis=duration_millis,
        )

    def to_dict(self) -> dict:
        """Konwertuj na słownik (dla CLI/raportów)"""
        return {
            'file_name': self.file_name,
            'file_path': self.file_path,
            'size_bytes': self.size_bytes,
            'raw_phone_number': self.raw_phone_number,
            'display_phone_number': self.display_phone_number,
            'call_type': self.call_type.value,
            'captured_at': self.captured_at.isoformat() if self.captured_at else None,
            'duration_millis': self.duration_millis,
            'identity_key': self.identity_key,
            'synced': self.synced,
            'matched_call_log_id': self.matched_call_log_id,
        }


@dataclass
class CallLogRecord:
    """Rekord call-log pobrany z serwera (kandydat do powiązania z nagraniem)"""
    id: str
    phone_number: str = ""
    customer_id: str = ""
    start_time: Optional[datetime] = None
    recording_url: str = ""

    @property
    def has_recording_url(self) -> bool:
        return bool(self.recording_url and self.recording_url.strip())

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'CallLogRecord':
        """Mapuj słownik z admin API (nazwy kolumn serwera) na rekord"""
        return CallLogRecord(
            id=str(data.get('id') or data.get('callid') or ''),
            phone_number=str(data.get('phonenumber') or ''),
            customer_id=str(data.get('customerid') or ''),
            start_time=parse_datetime_field(data.get('starttime')),
            recording_url=str(data.get('recordingurl') or ''),
        )


@dataclass
class DeviceCallLogEntry:
    """Wpis rejestru połączeń urządzenia (do wysłania przez sync_call_log)"""
    phone_number: str
    timestamp_ms: int
    duration_seconds: int = 0
    call_type: str = "1"        # kod urządzenia (1..6) lub nazwa ("INCOMING")
    name: str = ""
    sim_label: str = "mobile"

    # Stan synchronizacji (tylko w pamięci)
    synced: bool = False

    @property
    def call_id(self) -> str:
        """Unikalny identyfikator wpisu: CALL_<timestamp_ms>_<cyfry numeru>"""
        return f"CALL_{self.timestamp_ms}_{digits_only(self.phone_number)}"

    @property
    def started_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp_ms / 1000)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'DeviceCallLogEntry':
        """Mapuj surowy wpis z dostawcy call-log (pola jak w Android CallLog)"""
        timestamp = data.get('timestamp') or data.get('dateTime') or 0
        return DeviceCallLogEntry(
            phone_number=str(data.get('phoneNumber') or data.get('phone_number') or ''),
            timestamp_ms=int(timestamp),
            duration_seconds=int(data.get('duration') or 0),
            call_type=str(data.get('type') or '1'),
            name=str(data.get('name') or ''),
            sim_label=str(data.get('simDisplayName') or data.get('sim_label') or 'mobile'),
        )


@dataclass
class SyncState:
    """Stan synchronizacji zapisywany lokalnie"""
    synced_keys: Set[str] = field(default_factory=set)
    last_sync_at: Optional[datetime] = None


@dataclass
class SyncReport:
    """Zbiorczy wynik jednego przebiegu synchronizacji"""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    matched: int = 0
    skipped: int = 0            # już zsynchronizowane przed startem
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def summary(self) -> str:
        return (
            f"Uploaded: {self.succeeded}, Linked to call logs: {self.matched}, "
            f"Failed: {self.failed}, Already synced: {self.skipped}"
        )


@dataclass
class SyncSettings:
    """
    Jawna konfiguracja synchronizacji przekazywana do managerów.
    Zastępuje globalne flagi auto-sync/auto-refresh.
    """
    user_id: Optional[str] = None
    upload_batch_size: int = 10
    call_log_fetch_limit: int = 200
    auto_sync_enabled: bool = False
    auto_refresh_enabled: bool = True
    sync_interval_seconds: int = 300
