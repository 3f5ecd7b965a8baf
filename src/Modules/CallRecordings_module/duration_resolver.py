"""
Identity & Duration Resolver
============================

- Stabilny klucz tożsamości nagrania (nazwa + rozmiar + timestamp z nazwy)
- Odczyt długości nagrania z kontenera audio (mutagen)

Brak długości nie jest błędem - matching i sync działają bez niej.
"""

import os
from typing import Optional, Union

from loguru import logger
from mutagen import File as MutagenFile


IDENTITY_KEY_SEPARATOR = "_"


def build_identity_key(file_name: str, size_bytes: int, captured_at_raw: Optional[str]) -> str:
    """
    Zbuduj klucz tożsamości pliku.

    Tożsamość wynika z zawartości, nie z systemu plików: kopia z nowym
    mtime daje ten sam klucz.

    Args:
        file_name: Nazwa pliku
        size_bytes: Rozmiar w bajtach
        captured_at_raw: Surowy timestamp z nazwy ("YYYY-MM-DD HH:MM:SS") lub None

    Returns:
        "<nazwa>_<rozmiar>_<timestamp>"
    """
    return IDENTITY_KEY_SEPARATOR.join([file_name, str(size_bytes), captured_at_raw or ""])


def resolve_duration(file_path: Union[str, os.PathLike]) -> int:
    """
    Odczytaj długość nagrania w milisekundach.

    mutagen czyta tylko nagłówki kontenera - plik nie jest dekodowany.

    Returns:
        Długość w ms lub 0 gdy nie da się jej odczytać
    """
    try:
        audio = MutagenFile(file_path)
        if audio is None:
            # mutagen nie rozpoznał formatu (np. AMR/3GP)
            logger.debug(f"[DurationResolver] Unknown audio container: {file_path}")
            return 0

        length = getattr(getattr(audio, 'info', None), 'length', None)
        if not length or length <= 0:
            return 0

        return int(round(length * 1000))

    except Exception as e:
        logger.debug(f"[DurationResolver] Duration probe failed for {file_path}: {e}")
        return 0


def format_duration(millis: Optional[int]) -> str:
    """Czas trwania do wyświetlenia: "m:ss" lub "h:mm:ss" """
    if not millis:
        return "0:00"

    total_seconds = int(millis) // 1000
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_file_size(size_bytes: int) -> str:
    """Rozmiar pliku do wyświetlenia ("1.5 MB")"""
    if not size_bytes or size_bytes <= 0:
        return "0 B"

    size = float(size_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"
