"""
Tests for folder scanning
"""
import os
from datetime import datetime

from src.Modules.CallRecordings_module.source_scanner import (
    FolderScanner,
    compute_sync_stats,
    detect_new_recordings,
)

from conftest import make_recording


def _scanner():
    return FolderScanner(duration_resolver=lambda path: 1500)


class TestFolderScanner:

    def test_missing_folder_gives_empty_inventory(self, tmp_path):
        assert _scanner().scan(str(tmp_path / "missing")) == []

    def test_only_audio_files_in_top_level(self, recordings_dir):
        (recordings_dir / "9812345678_20240115143022_incoming.m4a").write_bytes(b"a" * 10)
        (recordings_dir / "notes.txt").write_text("x")
        nested = recordings_dir / "old"
        nested.mkdir()
        (nested / "9812345678_20230115143022.mp3").write_bytes(b"b")

        recordings = _scanner().scan(str(recordings_dir))

        assert [r.file_name for r in recordings] == ["9812345678_20240115143022_incoming.m4a"]
        assert recordings[0].size_bytes == 10
        assert recordings[0].duration_millis == 1500

    def test_newest_first_undated_last(self, recordings_dir):
        for name in (
            "b_voice.mp3",
            "111_20240101090000.mp3",
            "a_voice.mp3",
            "222_20240301090000.mp3",
        ):
            (recordings_dir / name).write_bytes(b"x")

        names = [r.file_name for r in _scanner().scan(str(recordings_dir))]

        assert names == ["222_20240301090000.mp3", "111_20240101090000.mp3", "a_voice.mp3", "b_voice.mp3"]

    def test_marks_synced_by_identity_key(self, recordings_dir):
        (recordings_dir / "111_20240101090000.mp3").write_bytes(b"xyz")
        (recordings_dir / "222_20240101090000.mp3").write_bytes(b"xyz")

        scanner = _scanner()
        first = scanner.scan(str(recordings_dir))
        synced_key = next(r.identity_key for r in first if r.file_name.startswith("111"))

        again = {r.file_name: r.synced for r in scanner.scan(str(recordings_dir), {synced_key})}
        assert again == {"111_20240101090000.mp3": True, "222_20240101090000.mp3": False}

    def test_one_bad_file_does_not_abort_scan(self, recordings_dir):
        (recordings_dir / "111_20240101090000.mp3").write_bytes(b"x")
        (recordings_dir / "222_20240101090000.mp3").write_bytes(b"x")

        def flaky(path):
            if os.path.basename(path).startswith("111"):
                raise OSError("unreadable")
            return 0

        recordings = FolderScanner(duration_resolver=flaky).scan(str(recordings_dir))
        assert [r.file_name for r in recordings] == ["222_20240101090000.mp3"]

    def test_progress_callback(self, recordings_dir):
        (recordings_dir / "1.mp3").write_bytes(b"x")
        (recordings_dir / "2.mp3").write_bytes(b"x")
        calls = []

        _scanner().scan(str(recordings_dir), progress_callback=lambda i, n, name: calls.append((i, n, name)))

        assert calls == [(1, 2, "1.mp3"), (2, 2, "2.mp3")]


class TestStats:

    def test_compute_sync_stats(self):
        a = make_recording("a.mp3")
        b = make_recording("b.mp3")
        c = make_recording("c.mp3")
        a.synced = True
        a.matched_call_log_id = "7"
        b.synced = True

        assert compute_sync_stats([a, b, c]) == {
            'total': 3, 'synced': 2, 'matched': 1, 'unmatched': 1, 'pending': 1,
        }

    def test_detect_new_recordings(self):
        recordings = [make_recording("a.mp3"), make_recording("b.mp3", captured_at=datetime(2024, 2, 1))]
        assert detect_new_recordings(None, recordings) == 0
        assert detect_new_recordings(1, recordings) == 1
        assert detect_new_recordings(5, recordings) == 0
