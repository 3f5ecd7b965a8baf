"""
Sync Manager - synchronizacja nagrań rozmów z serwerem.
========================================================

Ten moduł obsługuje jeden przebieg synchronizacji (orchestration run):
1. Pobranie kandydatów call-log z serwera (raz na przebieg)
2. Wybór nagrań jeszcze nie wysłanych (SyncStateStore)
3. Dopasowanie nagrania do call-log + upload, w paczkach po 10 równolegle
4. Zapis kluczy wysłanych nagrań po każdej paczce, last_sync_at na końcu

Błąd pojedynczego uploadu nie przerywa paczki - nagranie zostanie
zaproponowane ponownie w następnym przebiegu.

Harmonogram (auto-sync) należy do aplikacji - patrz auto_sync_scheduler.py.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Optional, List, Dict, Any, Callable

from loguru import logger

from .recording_api_client import RecordingsAPIClient
from .recording_models import CallLogRecord, RecordingFile, SyncReport, SyncSettings
from .sync_state_store import SyncStateStore
from .call_log_matcher import find_matching_call_log


class SyncInProgressError(RuntimeError):
    """Przebieg synchronizacji już trwa - nowe żądanie jest odrzucane"""


class MissingUserIdentityError(RuntimeError):
    """Brak user_id - synchronizacja nie może wystartować"""


@dataclass
class UploadOutcome:
    """Wynik uploadu pojedynczego nagrania"""
    success: bool
    matched: bool = False
    call_log_id: Optional[str] = None
    error: Optional[str] = None


class RecordingsSyncManager:
    """
    Menedżer synchronizacji nagrań (idempotentny, wznawialny).

    - Jeden przebieg naraz (współbieżne żądanie -> SyncInProgressError)
    - Maksymalnie upload_batch_size uploadów równolegle, paczka czeka na wszystkie
    - Zbiór wysłanych kluczy zapisywany po każdej paczce
    """

    def __init__(
        self,
        store: SyncStateStore,
        api_client: RecordingsAPIClient,
        settings: SyncSettings,
        on_sync_complete: Optional[Callable[[bool, str], None]] = None
    ):
        """
        Inicjalizacja Sync Manager.

        Args:
            store: Stan synchronizacji nagrań
            api_client: RecordingsAPIClient (fetch kandydatów + upload)
            settings: Jawna konfiguracja synchronizacji
            on_sync_complete: Callback po synchronizacji: (success: bool, message: str) -> None
        """
        self.store = store
        self.api_client = api_client
        self.settings = settings
        self.on_sync_complete = on_sync_complete

        self._lock = Lock()
        self._is_running = False

        # Stats
        self.sync_count = 0
        self.error_count = 0
        self.last_report: Optional[SyncReport] = None

        logger.info(f"[Recordings Sync] Manager initialized (batch={settings.upload_batch_size})")

    @property
    def is_running(self) -> bool:
        return self._is_running

    # =========================================================================
    # ORCHESTRATION RUN
    # =========================================================================

    def sync_unsynced(self, inventory: List[RecordingFile]) -> SyncReport:
        """
        Wyślij wszystkie nagrania z inwentarza, które nie są jeszcze zsynchronizowane.

        Args:
            inventory: Wynik FolderScanner.scan() (elementy są aktualizowane na miejscu)

        Returns:
            SyncReport (succeeded / failed / matched / skipped)

        Raises:
            MissingUserIdentityError: brak user_id (nic nie zostało wykonane)
            SyncInProgressError: inny przebieg jeszcze trwa
        """
        if not self.settings.user_id:
            logger.error("[Recordings Sync] No user ID, sync aborted")
            raise MissingUserIdentityError("User not logged in - cannot sync recordings")

        if not self._lock.acquire(blocking=False):
            logger.warning("[Recordings Sync] Sync already in progress, request rejected")
            raise SyncInProgressError("Sync already in progress")

        self._is_running = True
        try:
            report = self._run(inventory)
        finally:
            self._is_running = False
            self._lock.release()

        self.last_report = report
        self.sync_count += 1
        self.error_count += report.failed

        if self.on_sync_complete:
            self.on_sync_complete(report.success, report.summary())

        return report

    def sync_file(self, recording: RecordingFile) -> SyncReport:
        """Wyślij pojedyncze nagranie (te same zasady co pełny przebieg)"""
        return self.sync_unsynced([recording])

    def _run(self, inventory: List[RecordingFile]) -> SyncReport:
        report = SyncReport(total=len(inventory))

        # 1. Kandydaci call-log (raz na przebieg)
        candidates = self._fetch_candidates()

        # 2. Podział na wysłane / niewysłane
        unsynced: List[RecordingFile] = []
        for recording in inventory:
            if self.store.is_synced(recording.identity_key):
                recording.synced = True
                report.skipped += 1
            else:
                unsynced.append(recording)

        if not unsynced:
            logger.info("[Recordings Sync] All recordings are already synced")
            self.store.set_last_sync(datetime.now())
            return report

        logger.info(
            f"[Recordings Sync] Uploading {len(unsynced)} recordings "
            f"({report.skipped} already synced, {len(candidates)} call log candidates)"
        )

        # 3. Upload w paczkach
        batch_size = max(1, self.settings.upload_batch_size)

        for start in range(0, len(unsynced), batch_size):
            batch = unsynced[start:start + batch_size]
            outcomes = self._upload_batch(batch, candidates)

            # 4. Commit po każdej paczce
            accepted = {r.identity_key for r, outcome in zip(batch, outcomes) if outcome.success}
            persisted = self.store.mark_synced(accepted)
            if not persisted:
                logger.error(
                    f"[Recordings Sync] Sync state not saved for {len(accepted)} uploaded recordings, "
                    f"they will be uploaded again"
                )

            self._apply_outcomes(batch, outcomes, persisted, report)
            logger.debug(
                f"[Recordings Sync] Batch {start // batch_size + 1}: "
                f"{len(accepted)}/{len(batch)} uploaded"
            )

        self.store.set_last_sync(datetime.now())

        if report.failed:
            logger.warning(f"[Recordings Sync] Sync finished with errors: {report.summary()}")
        else:
            logger.success(f"[Recordings Sync] Sync completed: {report.summary()}")
        return report

    def _upload_batch(
        self,
        batch: List[RecordingFile],
        candidates: List[CallLogRecord]
    ) -> List[UploadOutcome]:
        """
        Dopasuj i wyślij jedną paczkę; czeka na wszystkie uploady.

        Każde nagranie jest dopasowywane do pełnej listy kandydatów przebiegu.

        Returns:
            Wyniki w kolejności paczki
        """
        matches = [find_matching_call_log(recording, candidates) for recording in batch]

        with ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix="RecordingUpload") as pool:
            futures = [
                pool.submit(self._upload_one, recording, match)
                for recording, match in zip(batch, matches)
            ]
            return [future.result() for future in futures]

    def _apply_outcomes(
        self,
        batch: List[RecordingFile],
        outcomes: List[UploadOutcome],
        persisted: bool,
        report: SyncReport
    ):
        """Zaktualizuj raport i nagrania; sukces liczy się tylko po zapisie stanu"""
        for recording, outcome in zip(batch, outcomes):
            if outcome.success and persisted:
                recording.synced = True
                recording.matched_call_log_id = outcome.call_log_id
                report.succeeded += 1
                if outcome.matched:
                    report.matched += 1
            elif outcome.success:
                report.failed += 1
                report.errors.append(f"{recording.file_name}: uploaded, but sync state could not be saved")
            else:
                report.failed += 1
                report.errors.append(f"{recording.file_name}: {outcome.error}")

    def _upload_one(self, recording: RecordingFile, match: Optional[CallLogRecord]) -> UploadOutcome:
        """Upload jednego nagrania; każdy błąd -> UploadOutcome(success=False)"""
        local_call_log_id = match.id if match is not None else None

        try:
            response = self.api_client.upload_recording(
                recording,
                self.settings.user_id,
                call_log_id=local_call_log_id
            )
        except Exception as e:
            logger.error(f"[Recordings Sync] Upload error for {recording.file_name}: {e}")
            return UploadOutcome(success=False, error=str(e))

        if not response.success:
            logger.error(f"[Recordings Sync] Upload failed for {recording.file_name}: {response.error}")
            return UploadOutcome(success=False, error=response.error or "Upload failed")

        data = response.data or {}
        call_log_id = data.get('call_log_id') or local_call_log_id
        return UploadOutcome(
            success=True,
            matched=bool(data.get('matched')) or local_call_log_id is not None,
            call_log_id=call_log_id,
        )

    def _fetch_candidates(self) -> List[CallLogRecord]:
        """Kandydaci call-log; błąd pobierania -> pusta lista (sync bez powiązań)"""
        try:
            response = self.api_client.get_call_logs_with_recordings(
                self.settings.user_id,
                limit=self.settings.call_log_fetch_limit,
                offset=0
            )
        except Exception as e:
            logger.error(f"[Recordings Sync] Error fetching call logs: {e}")
            return []

        if not response.success:
            logger.warning(f"[Recordings Sync] Call logs unavailable, syncing without links: {response.error}")
            return []

        return list(response.data or [])

    # =========================================================================
    # STATE / STATS
    # =========================================================================

    def clear_sync_history(self, inventory: Optional[List[RecordingFile]] = None) -> bool:
        """
        Wyczyść historię synchronizacji (akcja użytkownika).
        Nagrania z inwentarza są oznaczane jako niewysłane i niepowiązane.
        """
        if self._is_running:
            raise SyncInProgressError("Cannot clear sync history while sync is running")

        cleared = self.store.clear()
        if cleared and inventory:
            for recording in inventory:
                recording.synced = False
                recording.matched_call_log_id = None
        return cleared

    def get_stats(self) -> Dict[str, Any]:
        """
        Pobierz statystyki synchronizacji.

        Returns:
            Dict ze statystykami
        """
        return {
            'auto_sync_enabled': self.settings.auto_sync_enabled,
            'last_sync_at': self.store.last_sync_at,
            'synced_total': len(self.store.synced_keys()),
            'sync_count': self.sync_count,
            'error_count': self.error_count,
            'is_running': self._is_running,
        }
