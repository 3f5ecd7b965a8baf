"""
Lokalna baza SQLite stanu synchronizacji.

Przechowuje zbiór kluczy już wysłanych elementów oraz czas ostatniej
synchronizacji. Każdy moduł ma własną przestrzeń nazw (namespace):
- "recordings": identity key nagrań
- "call_logs": call_id wpisów rejestru połączeń
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Iterable, Optional, Set

from loguru import logger

from .recording_models import SyncState


RECORDINGS_NAMESPACE = "recordings"
CALL_LOGS_NAMESPACE = "call_logs"

LAST_SYNC_KEY = "last_sync_at"


class SyncStateStore:
    """
    Manager stanu synchronizacji (zbiór kluczy + last_sync_at).

    Zbiór kluczy rośnie monotonicznie - jedynie clear() usuwa klucze.
    Zapisy są serializowane przez lock (jeden writer naraz).
    """

    def __init__(self, db_path: str, namespace: str = RECORDINGS_NAMESPACE):
        """
        Args:
            db_path: Ścieżka do pliku bazy SQLite
            namespace: Przestrzeń nazw kluczy
        """
        self.db_path = Path(db_path)
        self.namespace = namespace
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = Lock()
        self._state: Optional[SyncState] = None

        self._init_database()
        logger.info(f"[SyncState] Store initialized: {self.db_path} (namespace={namespace})")

    def _init_database(self):
        """Tworzy tabele; uszkodzony plik bazy jest odkładany i tworzony od nowa"""
        try:
            self._create_tables()
        except sqlite3.DatabaseError as e:
            logger.error(f"[SyncState] Database unreadable ({e}), starting with empty state")
            self._discard_corrupt_file()
            self._create_tables()

    def _create_tables(self):
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS synced_items (
                    namespace TEXT NOT NULL,
                    item_key TEXT NOT NULL,
                    synced_at TEXT NOT NULL,
                    PRIMARY KEY (namespace, item_key)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS sync_meta (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT,
                    PRIMARY KEY (namespace, key)
                )
            """)

            conn.commit()

    def _discard_corrupt_file(self):
        backup = self.db_path.with_name(self.db_path.name + ".corrupt")
        try:
            self.db_path.replace(backup)
            logger.warning(f"[SyncState] Corrupt database moved to {backup}")
        except OSError as e:
            logger.error(f"[SyncState] Cannot move corrupt database: {e}")
            self.db_path.unlink(missing_ok=True)

    # =========================================================================
    # READ
    # =========================================================================

    def load(self) -> SyncState:
        """
        Wczytaj stan z bazy.

        Returns:
            SyncState; pusty gdy nic nie zapisano albo baza jest nieczytelna
        """
        state = SyncState()

        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()

                cursor.execute(
                    "SELECT item_key FROM synced_items WHERE namespace = ?",
                    (self.namespace,)
                )
                state.synced_keys = {row[0] for row in cursor.fetchall()}

                cursor.execute(
                    "SELECT value FROM sync_meta WHERE namespace = ? AND key = ?",
                    (self.namespace, LAST_SYNC_KEY)
                )
                row = cursor.fetchone()
                if row and row[0]:
                    state.last_sync_at = datetime.fromisoformat(row[0])

        except (sqlite3.DatabaseError, ValueError) as e:
            logger.error(f"[SyncState] Cannot load sync state, treating as empty: {e}")
            state = SyncState()

        self._state = state
        logger.debug(f"[SyncState] Loaded {len(state.synced_keys)} synced keys ({self.namespace})")
        return state

    @property
    def state(self) -> SyncState:
        if self._state is None:
            return self.load()
        return self._state

    def is_synced(self, key: str) -> bool:
        return key in self.state.synced_keys

    def synced_keys(self) -> Set[str]:
        return set(self.state.synced_keys)

    @property
    def last_sync_at(self) -> Optional[datetime]:
        return self.state.last_sync_at

    # =========================================================================
    # WRITE
    # =========================================================================

    def mark_synced(self, keys: Iterable[str]) -> bool:
        """
        Dodaj klucze do zbioru (idempotentne - istniejące klucze są pomijane).

        Returns:
            True jeśli zapisano, False przy błędzie bazy
        """
        keys = set(keys)
        if not keys:
            return True

        now = datetime.now().isoformat()

        with self._lock:
            try:
                with sqlite3.connect(self.db_path) as conn:
                    conn.executemany(
                        "INSERT OR IGNORE INTO synced_items (namespace, item_key, synced_at) VALUES (?, ?, ?)",
                        [(self.namespace, key, now) for key in keys]
                    )
                    conn.commit()
            except sqlite3.DatabaseError as e:
                logger.error(f"[SyncState] Failed to persist {len(keys)} synced keys: {e}")
                return False

            self.state.synced_keys |= keys

        logger.debug(f"[SyncState] Marked {len(keys)} keys as synced ({self.namespace})")
        return True

    def set_last_sync(self, timestamp: Optional[datetime] = None) -> bool:
        """Zapisz czas ostatniej synchronizacji (domyślnie teraz)"""
        timestamp = timestamp or datetime.now()

        with self._lock:
            try:
                with sqlite3.connect(self.db_path) as conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO sync_meta (namespace, key, value) VALUES (?, ?, ?)",
                        (self.namespace, LAST_SYNC_KEY, timestamp.isoformat())
                    )
                    conn.commit()
            except sqlite3.DatabaseError as e:
                logger.error(f"[SyncState] Failed to persist last sync time: {e}")
                return False

            self.state.last_sync_at = timestamp

        return True

    def clear(self) -> bool:
        """
        Wyczyść historię synchronizacji (tylko na wyraźne żądanie użytkownika).
        Wszystkie elementy będą ponownie traktowane jako niewysłane.
        """
        with self._lock:
            try:
                with sqlite3.connect(self.db_path) as conn:
                    conn.execute("DELETE FROM synced_items WHERE namespace = ?", (self.namespace,))
                    conn.execute("DELETE FROM sync_meta WHERE namespace = ?", (self.namespace,))
                    conn.commit()
            except sqlite3.DatabaseError as e:
                logger.error(f"[SyncState] Failed to clear sync state: {e}")
                return False

            self._state = SyncState()

        logger.info(f"[SyncState] Sync history cleared ({self.namespace})")
        return True
