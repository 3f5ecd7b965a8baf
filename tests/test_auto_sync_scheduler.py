"""
Tests for the background auto-sync worker
"""
import threading

from src.Modules.CallRecordings_module.auto_sync_scheduler import AutoSyncScheduler


def test_runs_immediately_and_on_trigger():
    ran = threading.Event()
    calls = []

    def job():
        calls.append(1)
        ran.set()

    scheduler = AutoSyncScheduler(job, interval_seconds=3600)
    scheduler.start()
    try:
        assert ran.wait(2)
        ran.clear()

        scheduler.trigger()
        assert ran.wait(2)
        assert scheduler.run_count >= 2
    finally:
        scheduler.stop()

    assert not scheduler.is_running()


def test_job_errors_keep_worker_alive():
    attempts = []
    done = threading.Event()

    def job():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("server down")
        done.set()

    scheduler = AutoSyncScheduler(job, interval_seconds=3600, retry_delay_seconds=0)
    scheduler.start()
    try:
        assert done.wait(2)
    finally:
        scheduler.stop()

    assert scheduler.error_count == 1
    assert scheduler.run_count >= 1


def test_stop_without_start_is_noop():
    scheduler = AutoSyncScheduler(lambda: None)
    scheduler.stop()
    assert not scheduler.is_running()
