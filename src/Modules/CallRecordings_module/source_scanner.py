"""
Call Recordings Source Scanner
==============================

Skanuje lokalny folder z nagraniami rozmów.

Features:
- Skanowanie nierekurencyjne (tylko główny folder)
- Filtrowanie po rozszerzeniach audio
- Parsowanie metadanych z nazwy pliku + długość z kontenera audio
- Oznaczanie plików już zsynchronizowanych (po identity key)
- Izolacja błędów na poziomie pojedynczego pliku
- Progress reporting
"""

import os
from typing import List, Dict, Optional, Callable, Iterable

from loguru import logger

from .filename_parser import is_audio_file, parse_recording_filename
from .duration_resolver import resolve_duration
from .recording_models import RecordingFile


class FolderScanner:
    """Scanner dla folderu z nagraniami rozmów"""

    def __init__(self, duration_resolver: Callable[[str], int] = resolve_duration):
        """
        Args:
            duration_resolver: Funkcja zwracająca długość pliku w ms (domyślnie mutagen)
        """
        self.duration_resolver = duration_resolver
        self.progress_callback: Optional[Callable] = None

    def scan(
        self,
        folder_path: str,
        synced_keys: Iterable[str] = (),
        progress_callback: Optional[Callable[[int, int, str], None]] = None
    ) -> List[RecordingFile]:
        """
        Skanuj folder i zbuduj inwentarz nagrań.

        Args:
            folder_path: Ścieżka do folderu z nagraniami
            synced_keys: Klucze tożsamości już wysłanych plików
            progress_callback: Callback(current, total, filename)

        Returns:
            Lista RecordingFile posortowana malejąco po dacie nagrania;
            pliki bez daty na końcu, w kolejności nazw
        """
        self.progress_callback = progress_callback
        synced_keys = set(synced_keys)

        if not os.path.isdir(folder_path):
            logger.error(f"[RecordingScanner] Folder not found: {folder_path}")
            return []

        logger.info(f"[RecordingScanner] Scanning: {folder_path}")

        audio_files = self._find_audio_files(folder_path)
        logger.info(f"[RecordingScanner] Found {len(audio_files)} audio files")

        recordings: List[RecordingFile] = []

        for i, file_path in enumerate(audio_files, 1):
            file_name = os.path.basename(file_path)
            if progress_callback:
                progress_callback(i, len(audio_files), file_name)

            try:
                recording = self._build_recording(file_path)
                recording.synced = recording.identity_key in synced_keys
                recordings.append(recording)
            except Exception as e:
                logger.error(f"[RecordingScanner] Skipping {file_name}: {e}")

        ordered = sort_recordings(recordings)
        logger.success(
            f"[RecordingScanner] Scan complete: {len(ordered)} recordings, "
            f"{sum(1 for r in ordered if r.synced)} already synced"
        )
        return ordered

    def _find_audio_files(self, folder_path: str) -> List[str]:
        """
        Znajdź pliki audio w folderze (bez podfolderów).

        Returns:
            Lista ścieżek posortowana po nazwie
        """
        audio_files = []

        try:
            for item in sorted(os.listdir(folder_path)):
                item_path = os.path.join(folder_path, item)

                if os.path.isfile(item_path) and is_audio_file(item):
                    audio_files.append(item_path)

        except PermissionError:
            logger.warning(f"[RecordingScanner] Permission denied: {folder_path}")
        except OSError as e:
            logger.error(f"[RecordingScanner] Error scanning {folder_path}: {e}")

        return audio_files

    def _build_recording(self, file_path: str) -> RecordingFile:
        """Stat + parsowanie nazwy + długość. Błąd I/O propaguje (plik pominięty)."""
        size_bytes = os.path.getsize(file_path)
        meta = parse_recording_filename(os.path.basename(file_path))
        duration_millis = self.duration_resolver(file_path)

        return RecordingFile.from_parsed(meta, file_path, size_bytes, duration_millis)


def sort_recordings(recordings: List[RecordingFile]) -> List[RecordingFile]:
    """Najnowsze pierwsze; nagrania bez daty zachowują względną kolejność na końcu"""
    dated = [r for r in recordings if r.captured_at is not None]
    undated = [r for r in recordings if r.captured_at is None]
    dated.sort(key=lambda r: r.captured_at, reverse=True)
    return dated + undated


def detect_new_recordings(previous_count: Optional[int], recordings: List[RecordingFile]) -> int:
    """
    Liczba nowych nagrań względem poprzedniego skanu (porównanie liczników).

    Pierwszy skan (previous_count=None) nie zgłasza nowych nagrań.
    """
    if previous_count is None:
        return 0
    return max(0, len(recordings) - previous_count)


def compute_sync_stats(recordings: List[RecordingFile]) -> Dict[str, int]:
    """Statystyki do wyświetlenia: total, synced, matched, unmatched, pending"""
    synced = sum(1 for r in recordings if r.synced)
    matched = sum(1 for r in recordings if r.matched_to_call_log)

    return {
        'total': len(recordings),
        'synced': synced,
        'matched': matched,
        'unmatched': max(0, synced - matched),
        'pending': len(recordings) - synced,
    }

