"""
Call-Log Matcher
================

Dopasowuje nagranie do rekordu call-log z serwera:
- numer telefonu (ostatnie 10 cyfr LUB zawieranie się numerów)
- czas rozpoczęcia w oknie ±120 s od czasu nagrania
- wygrywa najbliższy w czasie; przy remisie pierwszy z listy

Czysta funkcja - bez I/O. Kandydaci są pobierani przez sync manager.
"""

from typing import List, Optional

from .recording_models import CallLogRecord, RecordingFile, digits_only


MATCH_WINDOW_SECONDS = 120
PHONE_SUFFIX_LENGTH = 10


def phone_numbers_match(recording_digits: str, candidate_value: Optional[str]) -> bool:
    """
    Porównanie numerów odporne na prefiksy krajowe (+91 / 0091 / brak).

    Wystarczy zgodność ostatnich 10 cyfr albo zawieranie się jednego numeru w drugim.
    """
    candidate_digits = digits_only(candidate_value)
    if not recording_digits or not candidate_digits:
        return False

    if recording_digits[-PHONE_SUFFIX_LENGTH:] == candidate_digits[-PHONE_SUFFIX_LENGTH:]:
        return True

    return recording_digits in candidate_digits or candidate_digits in recording_digits


def find_matching_call_log(
    recording: RecordingFile,
    candidates: List[CallLogRecord]
) -> Optional[CallLogRecord]:
    """
    Znajdź najlepszy rekord call-log dla nagrania.

    Args:
        recording: Nagranie z inwentarza
        candidates: Rekordy call-log pobrane z serwera

    Returns:
        Najbliższy w czasie pasujący rekord lub None
    """
    recording_digits = digits_only(recording.raw_phone_number)
    if not recording_digits or recording.captured_at is None:
        return None

    best: Optional[CallLogRecord] = None
    best_delta: Optional[float] = None

    for candidate in candidates:
        # Jeden rekord call-log przyjmuje najwyżej jedno nagranie
        if candidate.has_recording_url:
            continue

        if not (phone_numbers_match(recording_digits, candidate.phone_number)
                or phone_numbers_match(recording_digits, candidate.customer_id)):
            continue

        if candidate.start_time is None:
            continue

        delta = abs((candidate.start_time - recording.captured_at).total_seconds())
        if delta > MATCH_WINDOW_SECONDS:
            continue

        # Ścisłe "<" - przy remisie zostaje pierwszy kandydat
        if best_delta is None or delta < best_delta:
            best = candidate
            best_delta = delta

    return best
