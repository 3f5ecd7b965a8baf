"""
Tests for recording filename parsing
"""
from datetime import datetime

import pytest

from src.Modules.CallRecordings_module.filename_parser import (
    classify_call_type,
    extract_phone_number,
    extract_timestamp,
    format_phone_number,
    is_audio_file,
    parse_recording_filename,
)
from src.Modules.CallRecordings_module.recording_models import CallType


class TestParseRecordingFilename:
    """Full filename -> metadata"""

    def test_standard_incoming_recording(self):
        meta = parse_recording_filename("919812345678~_20240115143022_incoming.m4a")

        assert meta.raw_phone_number == "919812345678"
        assert meta.display_phone_number == "+91 98123 45678"
        assert meta.captured_at == datetime(2024, 1, 15, 14, 30, 22)
        assert meta.captured_at_raw == "2024-01-15 14:30:22"
        assert meta.call_type == CallType.INCOMING
        assert meta.date_label == "15 Jan 2024"
        assert meta.time_label == "02:30:22 PM"

    def test_no_digits_and_no_timestamp(self):
        meta = parse_recording_filename("voice_note.mp3")

        assert meta.raw_phone_number == ""
        assert meta.display_phone_number == "Unknown"
        assert meta.captured_at is None
        assert meta.captured_at_raw == ""
        assert meta.call_type == CallType.RECORDED_CALL
        assert meta.date_label == "Unknown Date"
        assert meta.time_label == "Unknown Time"

    def test_invalid_calendar_date_is_treated_as_absent(self):
        meta = parse_recording_filename("9812345678_20241340123000_outgoing.amr")

        assert meta.raw_phone_number == "9812345678"
        assert meta.captured_at is None
        assert meta.captured_at_raw == ""
        assert meta.call_type == CallType.OUTGOING

    def test_midnight_uses_twelve_am(self):
        meta = parse_recording_filename("9812345678_20240301000501.wav")

        assert meta.time_label == "12:05:01 AM"
        assert meta.date_label == "01 Mar 2024"


class TestPhoneNumber:

    @pytest.mark.parametrize("number,expected", [
        ("919812345678", "+91 98123 45678"),
        ("00919812345678", "+91 98123 45678"),
        ("0091123", "+91 123"),
        ("9812345678", "98123 45678"),
        ("12345", "12345"),
        ("", "Unknown"),
        (None, "Unknown"),
    ])
    def test_format_phone_number(self, number, expected):
        assert format_phone_number(number) == expected

    def test_digits_before_tilde_win(self):
        assert extract_phone_number("12345~98765_20240115143022") == "12345"

    def test_leading_digits_without_tilde(self):
        assert extract_phone_number("9812345678_20240115143022_in_") == "9812345678"

    def test_no_leading_digits(self):
        assert extract_phone_number("Call_9812345678") == ""


class TestTimestampAndType:

    def test_extract_timestamp(self):
        captured_at, raw = extract_timestamp("x_20231231235959")
        assert captured_at == datetime(2023, 12, 31, 23, 59, 59)
        assert raw == "2023-12-31 23:59:59"

    def test_timestamp_needs_underscore_prefix(self):
        assert extract_timestamp("20231231235959") == (None, "")

    @pytest.mark.parametrize("name,expected", [
        ("a_incoming.m4a", CallType.INCOMING),
        ("a_in_b.m4a", CallType.INCOMING),
        ("a_OUTGOING.m4a", CallType.OUTGOING),
        ("a_out_b.m4a", CallType.OUTGOING),
        ("a_missed.m4a", CallType.MISSED),
        ("a.m4a", CallType.RECORDED_CALL),
    ])
    def test_classify_call_type(self, name, expected):
        assert classify_call_type(name) == expected

    @pytest.mark.parametrize("name,expected", [
        ("a.MP3", True),
        ("a.m4a", True),
        ("a.3gp", True),
        ("a.aac", True),
        ("a.txt", False),
        ("a.m4a.bak", False),
    ])
    def test_is_audio_file(self, name, expected):
        assert is_audio_file(name) is expected
