"""
Recording Filename Parser
=========================

Wydobywa metadane nagrania z nazwy pliku.

Obsługiwany format nazw (rejestratory rozmów na Androidzie):
    <cyfry>~<reszta>_YYYYMMDDHHMMSS_<typ>.<rozszerzenie>
    np. "919812345678~_20240115143022_incoming.m4a"

Parser nigdy nie rzuca wyjątku - częściowa informacja jest lepsza
niż odrzucenie pliku.
"""

import re
from datetime import datetime
from typing import Optional, Tuple
from loguru import logger

from .recording_models import CallType, ParsedRecordingMeta, TIMESTAMP_FORMAT


AUDIO_EXTENSIONS = ('mp3', 'm4a', 'wav', 'amr', '3gp', 'aac')

AUDIO_EXTENSION_PATTERN = re.compile(r"\.(mp3|m4a|wav|amr|3gp|aac)$", re.IGNORECASE)
_PHONE_WITH_DELIMITER = re.compile(r"^(\d+)~")
_LEADING_DIGITS = re.compile(r"^(\d+)")
_TIMESTAMP = re.compile(r"_(\d{14})")

_MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def is_audio_file(file_name: str) -> bool:
    """Sprawdź czy nazwa pliku ma obsługiwane rozszerzenie audio"""
    return bool(AUDIO_EXTENSION_PATTERN.search(file_name))


def strip_audio_extension(file_name: str) -> str:
    """Usuń rozszerzenie audio (jeśli brak - zwróć pełną nazwę)"""
    return AUDIO_EXTENSION_PATTERN.sub("", file_name)


def format_phone_number(number: Optional[str]) -> str:
    """
    Sformatuj numer telefonu do wyświetlenia.

    Ta sama funkcja musi być używana dla nagrań i dla wpisów call-log,
    żeby porównania w UI miały sens.

    Args:
        number: Numer (zwykle same cyfry)

    Returns:
        "+91 98123 45678", "98123 45678", numer bez zmian lub "Unknown"
    """
    if not number:
        return "Unknown"

    if number.startswith("0091"):
        main = number[4:]
        if len(main) == 10:
            return f"+91 {main[:5]} {main[5:]}"
        return f"+91 {main}"

    if number.startswith("91") and len(number) == 12:
        main = number[2:]
        return f"+91 {main[:5]} {main[5:]}"

    if len(number) == 10:
        return f"{number[:5]} {number[5:]}"

    return number


def extract_phone_number(name_without_ext: str) -> str:
    """Numer: cyfry przed '~', a gdy brak separatora - cyfry na początku nazwy"""
    match = _PHONE_WITH_DELIMITER.match(name_without_ext)
    if match:
        return match.group(1)

    match = _LEADING_DIGITS.match(name_without_ext)
    if match:
        return match.group(1)

    return ""


def extract_timestamp(name_without_ext: str) -> Tuple[Optional[datetime], str]:
    """
    Znajdź "_YYYYMMDDHHMMSS" w nazwie.

    Returns:
        (datetime lokalny, surowy string "YYYY-MM-DD HH:MM:SS") lub (None, "")
    """
    match = _TIMESTAMP.search(name_without_ext)
    if not match:
        return None, ""

    ts = match.group(1)
    try:
        captured_at = datetime(
            int(ts[0:4]), int(ts[4:6]), int(ts[6:8]),
            int(ts[8:10]), int(ts[10:12]), int(ts[12:14]),
        )
    except ValueError:
        # np. miesiąc 13 - traktujemy jak brak timestampu
        logger.debug(f"[RecordingParser] Invalid calendar timestamp: {ts}")
        return None, ""

    return captured_at, captured_at.strftime(TIMESTAMP_FORMAT)


def classify_call_type(file_name: str) -> CallType:
    """Typ połączenia z nazwy pliku (kolejność: incoming, outgoing, missed)"""
    lower_name = file_name.lower()

    if "incoming" in lower_name or "_in_" in lower_name:
        return CallType.INCOMING
    if "outgoing" in lower_name or "_out_" in lower_name:
        return CallType.OUTGOING
    if "missed" in lower_name:
        return CallType.MISSED
    return CallType.RECORDED_CALL


def format_date_label(value: datetime) -> str:
    return f"{value.day:02d} {_MONTH_NAMES[value.month - 1]} {value.year}"


def format_time_label(value: datetime) -> str:
    hour12 = value.hour % 12 or 12
    ampm = "PM" if value.hour >= 12 else "AM"
    return f"{hour12:02d}:{value.minute:02d}:{value.second:02d} {ampm}"


def parse_recording_filename(file_name: str) -> ParsedRecordingMeta:
    """
    Sparsuj nazwę pliku nagrania.

    Args:
        file_name: Sama nazwa pliku (bez katalogu)

    Returns:
        ParsedRecordingMeta; przy wyjątku pola Unknown/puste
    """
    try:
        name_without_ext = strip_audio_extension(file_name)

        raw_phone = extract_phone_number(name_without_ext)
        captured_at, captured_at_raw = extract_timestamp(name_without_ext)

        meta = ParsedRecordingMeta(
            file_name=file_name,
            raw_phone_number=raw_phone,
            display_phone_number=format_phone_number(raw_phone),
            call_type=classify_call_type(file_name),
            captured_at=captured_at,
            captured_at_raw=captured_at_raw,
        )

        if captured_at is not None:
            meta.date_label = format_date_label(captured_at)
            meta.time_label = format_time_label(captured_at)

        return meta

    except Exception as e:
        logger.warning(f"[RecordingParser] Cannot parse file name {file_name!r}: {e}")
        return ParsedRecordingMeta(
            file_name=file_name,
            raw_phone_number="",
            display_phone_number="Unknown",
            call_type=CallType.UNKNOWN,
            date_label="N/A",
            time_label="N/A",
        )
