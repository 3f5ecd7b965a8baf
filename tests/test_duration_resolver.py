"""
Tests for identity keys and duration probing
"""
from types import SimpleNamespace

from src.Modules.CallRecordings_module import duration_resolver
from src.Modules.CallRecordings_module.duration_resolver import (
    build_identity_key,
    format_duration,
    format_file_size,
    resolve_duration,
)

from conftest import make_recording


class TestIdentityKey:

    def test_key_layout(self):
        key = build_identity_key("a.m4a", 2048, "2024-01-15 14:30:22")
        assert key == "a.m4a_2048_2024-01-15 14:30:22"

    def test_missing_timestamp_gives_empty_suffix(self):
        assert build_identity_key("a.m4a", 10, None) == "a.m4a_10_"
        assert build_identity_key("a.m4a", 10, "") == "a.m4a_10_"

    def test_recording_key_ignores_path(self):
        first = make_recording("a.m4a", file_path="/sdcard/a.m4a")
        copy = make_recording("a.m4a", file_path="/backup/a.m4a")
        assert first.identity_key == copy.identity_key

    def test_size_change_changes_key(self):
        assert make_recording("a.m4a", size_bytes=1).identity_key != make_recording("a.m4a", size_bytes=2).identity_key


class TestResolveDuration:

    def test_reads_length_in_millis(self, monkeypatch):
        monkeypatch.setattr(
            duration_resolver, "MutagenFile",
            lambda path: SimpleNamespace(info=SimpleNamespace(length=12.3456))
        )
        assert resolve_duration("x.m4a") == 12346

    def test_unknown_container(self, monkeypatch):
        monkeypatch.setattr(duration_resolver, "MutagenFile", lambda path: None)
        assert resolve_duration("x.amr") == 0

    def test_probe_error_gives_zero(self, monkeypatch):
        def boom(path):
            raise OSError("truncated")

        monkeypatch.setattr(duration_resolver, "MutagenFile", boom)
        assert resolve_duration("x.m4a") == 0

    def test_garbage_file_gives_zero(self, tmp_path):
        path = tmp_path / "noise.mp3"
        path.write_bytes(b"not really audio")
        assert resolve_duration(str(path)) == 0


class TestFormatting:

    def test_format_duration(self):
        assert format_duration(0) == "0:00"
        assert format_duration(65_000) == "1:05"
        assert format_duration(3_725_000) == "1:02:05"

    def test_format_file_size(self):
        assert format_file_size(0) == "0 B"
        assert format_file_size(512) == "512.0 B"
        assert format_file_size(1536) == "1.5 KB"
        assert format_file_size(5 * 1024 * 1024) == "5.0 MB"
