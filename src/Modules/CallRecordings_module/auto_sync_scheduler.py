"""
Auto-Sync Scheduler
===================

Background worker należący do aplikacji-hosta. Wywołuje przekazane zadanie
(np. skan + synchronizacja) co sync_interval sekund albo natychmiast po
trigger() (powrót aplikacji na pierwszy plan, koniec rozmowy).

Rdzeń synchronizacji nie wie, kto i kiedy go wywołuje.
"""

from threading import Thread, Event
from typing import Any, Callable, Optional

from loguru import logger


class AutoSyncScheduler:
    """Wywołuje job w osobnym wątku co interval_seconds lub na żądanie"""

    def __init__(
        self,
        job: Callable[[], Any],
        interval_seconds: int = 300,
        retry_delay_seconds: int = 60,
        name: str = "RecordingsAutoSync"
    ):
        """
        Args:
            job: Zadanie do wykonania (wyjątki są logowane, worker działa dalej)
            interval_seconds: Odstęp między przebiegami
            retry_delay_seconds: Odstęp po błędzie zadania
            name: Nazwa wątku
        """
        self.job = job
        self.interval_seconds = interval_seconds
        self.retry_delay_seconds = retry_delay_seconds
        self.name = name

        self._worker_thread: Optional[Thread] = None
        self._stop_event = Event()
        self._wake_event = Event()
        self._is_running = False

        self.run_count = 0
        self.error_count = 0

    def start(self):
        """Uruchom background worker"""
        if self._is_running:
            logger.warning(f"[AutoSync] Worker {self.name} already running")
            return

        self._stop_event.clear()
        self._wake_event.clear()
        self._is_running = True
        self._worker_thread = Thread(target=self._worker_loop, daemon=True, name=self.name)
        self._worker_thread.start()
        logger.info(f"[AutoSync] Worker started (interval={self.interval_seconds}s)")

    def stop(self, wait: bool = True, timeout: float = 5.0):
        """
        Zatrzymaj background worker.

        Args:
            wait: Czy czekać na zakończenie worker thread
            timeout: Timeout w sekundach
        """
        if not self._is_running:
            logger.warning(f"[AutoSync] Worker {self.name} not running")
            return

        logger.info("[AutoSync] Stopping worker...")
        self._stop_event.set()
        self._wake_event.set()
        self._is_running = False

        if wait and self._worker_thread:
            self._worker_thread.join(timeout=timeout)
            if self._worker_thread.is_alive():
                logger.warning("[AutoSync] Worker did not stop within timeout")
            else:
                logger.info("[AutoSync] Worker stopped")

    def trigger(self):
        """Wykonaj zadanie teraz, bez czekania na interwał"""
        logger.debug(f"[AutoSync] Trigger requested for {self.name}")
        self._wake_event.set()

    def is_running(self) -> bool:
        return self._is_running

    def _worker_loop(self):
        logger.debug("[AutoSync] Worker loop started")

        while not self._stop_event.is_set():
            delay = self.interval_seconds
            try:
                self.job()
                self.run_count += 1
            except Exception as e:
                logger.error(f"[AutoSync] Error in scheduled job: {e}")
                self.error_count += 1
                delay = self.retry_delay_seconds

            self._wake_event.wait(timeout=delay)
            self._wake_event.clear()

        logger.debug("[AutoSync] Worker loop exited")
