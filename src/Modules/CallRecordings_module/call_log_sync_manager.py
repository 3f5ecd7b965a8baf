"""
CallLog Sync Manager - wysyłanie rejestru połączeń urządzenia na serwer.
=======================================================================

Wpisy rejestru połączeń (dostarczone przez aplikację-hosta, np. eksport JSON
z Android CallLog) są normalizowane i wysyłane zadaniem sync_call_log
w paczkach po 10 równoległych requestów.

Idempotencja jak dla nagrań: wysłane call_id trafiają do SyncStateStore
(namespace "call_logs"), błędne wpisy zostaną ponowione w kolejnym przebiegu.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Optional, List, Dict, Any, Iterable, Union

from loguru import logger

from .filename_parser import format_phone_number
from .recording_api_client import RecordingsAPIClient, APIResponse
from .recording_models import DeviceCallLogEntry, SyncReport, SyncSettings, TIMESTAMP_FORMAT, digits_only
from .recordings_sync_manager import SyncInProgressError, MissingUserIdentityError
from .sync_state_store import SyncStateStore


CALL_TYPE_FOR_DB = {
    '1': 'INCOMING', 'INCOMING': 'INCOMING',
    '2': 'OUTGOING', 'OUTGOING': 'OUTGOING',
    '3': 'MISSED', 'MISSED': 'MISSED',
    '4': 'VOICEMAIL', 'VOICEMAIL': 'VOICEMAIL',
    '5': 'REJECTED', 'REJECTED': 'REJECTED',
    '6': 'BLOCKED', 'BLOCKED': 'BLOCKED',
}


def call_type_for_db(call_type: Union[str, int, None]) -> str:
    """Kod typu z urządzenia (1..6 lub nazwa) -> nazwa typu w bazie serwera"""
    return CALL_TYPE_FOR_DB.get(str(call_type).upper(), 'UNKNOWN')


def prepare_call_log_payload(entry: DeviceCallLogEntry, user_id: Union[str, int]) -> Dict[str, Any]:
    """
    Zbuduj payload zadania sync_call_log.

    Dla połączeń wychodzących dzwoniącym jest użytkownik, dla pozostałych
    numer z rejestru.
    """
    raw_number = entry.phone_number
    is_outgoing = call_type_for_db(entry.call_type) == 'OUTGOING'
    user_value = int(user_id) if str(user_id).isdigit() else user_id

    return {
        'user_id': user_value,
        'callid': entry.call_id,
        'callerid': user_value if is_outgoing else raw_number,
        'calledby': raw_number if is_outgoing else user_value,
        'name': entry.name or '',
        'customerid': digits_only(raw_number),
        'phonenumber': format_phone_number(digits_only(raw_number)),
        'starttime': entry.started_at.strftime(TIMESTAMP_FORMAT),
        'duration': int(entry.duration_seconds or 0),
        'type': call_type_for_db(entry.call_type),
        'tag': entry.sim_label or 'mobile',
        'recordingurl': '',
    }


def load_call_log_export(path: Union[str, Path]) -> List[DeviceCallLogEntry]:
    """
    Wczytaj eksport rejestru połączeń (JSON: lista wpisów jak z Android CallLog).

    Niepoprawne wpisy są pomijane.
    """
    with open(path, 'r', encoding='utf-8') as f:
        raw_entries = json.load(f)

    entries = []
    for raw in raw_entries if isinstance(raw_entries, list) else []:
        try:
            entries.append(DeviceCallLogEntry.from_dict(raw))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"[CallLog Sync] Skipping malformed call log entry: {e}")

    logger.info(f"[CallLog Sync] Loaded {len(entries)} call log entries from {path}")
    return entries


class CallLogSyncManager:
    """
    Menedżer synchronizacji rejestru połączeń.

    - Jeden przebieg naraz
    - Paczki po upload_batch_size równoległych requestów
    - Wysłane call_id zapisywane po każdej paczce
    """

    def __init__(
        self,
        store: SyncStateStore,
        api_client: RecordingsAPIClient,
        settings: SyncSettings
    ):
        self.store = store
        self.api_client = api_client
        self.settings = settings

        self._lock = Lock()

        logger.info("[CallLog Sync] Manager initialized")

    def mark_synced_flags(self, entries: Iterable[DeviceCallLogEntry]) -> List[DeviceCallLogEntry]:
        """Ustaw flagę synced i posortuj wpisy od najnowszego"""
        entries = list(entries)
        for entry in entries:
            entry.synced = self.store.is_synced(entry.call_id)
        entries.sort(key=lambda e: e.timestamp_ms, reverse=True)
        return entries

    def compute_stats(self, entries: List[DeviceCallLogEntry]) -> Dict[str, int]:
        """Statystyki rejestru: total, typy połączeń, synced, pending"""
        types = [call_type_for_db(e.call_type) for e in entries]
        synced = sum(1 for e in entries if self.store.is_synced(e.call_id))
        return {
            'total': len(entries),
            'incoming': types.count('INCOMING'),
            'outgoing': types.count('OUTGOING'),
            'missed': types.count('MISSED'),
            'rejected': types.count('REJECTED'),
            'synced': synced,
            'pending': len(entries) - synced,
        }

    def sync_unsynced(self, entries: List[DeviceCallLogEntry]) -> SyncReport:
        """
        Wyślij wpisy rejestru, których call_id nie jest jeszcze zsynchronizowany.

        Raises:
            MissingUserIdentityError: brak user_id
            SyncInProgressError: inny przebieg jeszcze trwa
        """
        if not self.settings.user_id:
            logger.error("[CallLog Sync] No user ID, sync aborted")
            raise MissingUserIdentityError("User not logged in - cannot sync call logs")

        if not self._lock.acquire(blocking=False):
            logger.warning("[CallLog Sync] Sync already in progress, request rejected")
            raise SyncInProgressError("Call log sync already in progress")

        try:
            return self._run(entries)
        finally:
            self._lock.release()

    def _run(self, entries: List[DeviceCallLogEntry]) -> SyncReport:
        report = SyncReport(total=len(entries))

        unsynced = []
        seen = set()
        for entry in entries:
            if self.store.is_synced(entry.call_id):
                entry.synced = True
                report.skipped += 1
            elif entry.call_id not in seen:
                seen.add(entry.call_id)
                unsynced.append(entry)

        if not unsynced:
            logger.info("[CallLog Sync] All calls are already synced")
            return report

        logger.info(f"[CallLog Sync] Syncing {len(unsynced)} call log entries...")
        batch_size = max(1, self.settings.upload_batch_size)

        for start in range(0, len(unsynced), batch_size):
            batch = unsynced[start:start + batch_size]

            with ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix="CallLogSync") as pool:
                responses = list(pool.map(self._sync_one, batch))

            accepted = {entry.call_id for entry, response in zip(batch, responses) if response.success}
            persisted = self.store.mark_synced(accepted)
            if not persisted:
                logger.error(
                    f"[CallLog Sync] Sync state not saved for {len(accepted)} call log entries, "
                    f"they will be sent again"
                )

            for entry, response in zip(batch, responses):
                if response.success and persisted:
                    entry.synced = True
                    report.succeeded += 1
                elif response.success:
                    report.failed += 1
                    report.errors.append(f"{entry.call_id}: sent, but sync state could not be saved")
                else:
                    report.failed += 1
                    report.errors.append(f"{entry.call_id}: {response.error}")

        self.store.set_last_sync(datetime.now())
        logger.success(
            f"[CallLog Sync] Sync complete: synced={report.succeeded}, failed={report.failed}"
        )
        return report

    def _sync_one(self, entry: DeviceCallLogEntry) -> APIResponse:
        try:
            payload = prepare_call_log_payload(entry, self.settings.user_id)
            return self.api_client.sync_call_log(payload)
        except Exception as e:
            logger.error(f"[CallLog Sync] Error syncing call {entry.call_id}: {e}")
            return APIResponse(success=False, error=str(e))

    def fetch_synced_call_logs(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        """Wpisy już zapisane na serwerze (get_call_logs); błąd -> pusta lista"""
        if not self.settings.user_id:
            raise MissingUserIdentityError("User not logged in - cannot fetch call logs")

        response = self.api_client.get_call_logs(self.settings.user_id, limit=limit, offset=offset)
        if not response.success:
            logger.warning(f"[CallLog Sync] Failed to fetch synced call logs: {response.error}")
            return []
        return response.data

    def clear_sync_history(self) -> bool:
        return self.store.clear()
