"""
Main entry point for PRO-Ka-Po Call Recordings Sync

USAGE:
  python main.py scan --path /sdcard/Recordings/Call
  python main.py sync
  python main.py sync-calls --file calls.json
  python main.py call-logs
  python main.py status
  python main.py clear [--call-logs]
  python main.py settings --path /sdcard/Recordings/Call --user-id 42 --auto-sync on
  python main.py watch
"""
import argparse
import sys
import time
from pathlib import Path
from typing import Optional, List

from loguru import logger

from src.core.config import (
    config,
    ensure_directories,
    load_settings,
    save_settings,
    build_sync_settings,
)
from src.Modules.CallRecordings_module import (
    FolderScanner,
    RecordingFile,
    RecordingsAPIClient,
    RecordingsSyncManager,
    CallLogSyncManager,
    SyncStateStore,
    AutoSyncScheduler,
    SyncInProgressError,
    MissingUserIdentityError,
    RECORDINGS_NAMESPACE,
    CALL_LOGS_NAMESPACE,
    compute_sync_stats,
    detect_new_recordings,
    load_call_log_export,
)
from src.Modules.CallRecordings_module.duration_resolver import format_duration, format_file_size


def setup_logging(verbose: bool = False) -> None:
    """Configure application logging"""
    # Remove default logger
    logger.remove()

    level = "DEBUG" if verbose else config.LOG_LEVEL

    # Add console logger
    logger.add(
        sys.stderr,
        format=config.LOG_FORMAT,
        level=level,
        colorize=True,
    )

    # Add file logger
    log_file = config.LOGS_DIR / "recordings_sync.log"
    logger.add(
        log_file,
        format=config.LOG_FORMAT,
        level=level,
        rotation=config.LOG_ROTATION,
        retention=config.LOG_RETENTION,
        encoding="utf-8",
    )

    logger.info(f"Starting {config.APP_NAME} v{config.APP_VERSION}")


class RecordingsApp:
    """Składa komponenty synchronizacji na podstawie konfiguracji i ustawień użytkownika"""

    def __init__(self, settings: dict):
        self.settings = settings
        self.sync_settings = build_sync_settings(settings)

        self.api_client = RecordingsAPIClient(
            settings.get('api_url') or config.API_BASE_URL,
            upload_endpoint=config.UPLOAD_ENDPOINT,
            admin_endpoint=config.ADMIN_API_ENDPOINT,
            timeout=config.HTTP_TIMEOUT,
        )
        self.recordings_store = SyncStateStore(config.SYNC_STATE_DB, RECORDINGS_NAMESPACE)
        self.call_logs_store = SyncStateStore(config.SYNC_STATE_DB, CALL_LOGS_NAMESPACE)

        self.scanner = FolderScanner()
        self.sync_manager = RecordingsSyncManager(self.recordings_store, self.api_client, self.sync_settings)
        self.call_log_manager = CallLogSyncManager(self.call_logs_store, self.api_client, self.sync_settings)

        self._previous_count: Optional[int] = None

    @property
    def recordings_path(self) -> Optional[str]:
        return self.settings.get('recordings_path')

    def scan(self, path: Optional[str] = None) -> List[RecordingFile]:
        folder = path or self.recordings_path
        if not folder:
            raise ValueError("No recordings folder configured (use --path or 'settings --path')")

        recordings = self.scanner.scan(folder, self.recordings_store.synced_keys())

        new_count = detect_new_recordings(self._previous_count, recordings)
        if new_count:
            logger.info(f"[Recordings] {new_count} new recording(s) detected")
        self._previous_count = len(recordings)
        return recordings

    def scan_and_sync(self):
        """Zadanie auto-sync: odśwież inwentarz, a przy włączonym auto-sync wyślij nowe nagrania"""
        recordings = self.scan()
        if self.sync_settings.auto_sync_enabled and any(not r.synced for r in recordings):
            report = self.sync_manager.sync_unsynced(recordings)
            logger.info(f"[Recordings] Auto-sync: {report.summary()}")


def _print_inventory(recordings: List[RecordingFile]) -> None:
    for r in recordings:
        status = "synced" if r.synced else "pending"
        link = f" -> call log {r.matched_call_log_id}" if r.matched_call_log_id else ""
        print(
            f"  [{status:7}] {r.display_phone_number:16} {r.date_label} {r.time_label} "
            f"{r.call_type.value:13} {format_duration(r.duration_millis):>7} "
            f"{format_file_size(r.size_bytes):>9}  {r.file_name}{link}"
        )
    stats = compute_sync_stats(recordings)
    print(
        f"\nTotal: {stats['total']}  Synced: {stats['synced']}  Pending: {stats['pending']}  "
        f"Linked: {stats['matched']}"
    )


def _on_off(value: str) -> bool:
    if value.lower() in ('on', 'true', 'yes', '1'):
        return True
    if value.lower() in ('off', 'false', 'no', '0'):
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='recordings-sync',
        description='Call recordings scanner and idempotent uploader',
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')

    sub = parser.add_subparsers(dest='command', required=True)

    scan = sub.add_parser('scan', help='List recordings and their sync status')
    scan.add_argument('--path', '-p', help='Recordings folder (default: saved path)')

    sync = sub.add_parser('sync', help='Upload unsynced recordings and link them to call logs')
    sync.add_argument('--path', '-p', help='Recordings folder (default: saved path)')

    sync_calls = sub.add_parser('sync-calls', help='Upload device call log entries')
    sync_calls.add_argument('--file', '-f', required=True, type=Path, help='Call log export (JSON)')

    call_logs = sub.add_parser('call-logs', help='Show call logs stored on the server')
    call_logs.add_argument('--limit', type=int, default=100)

    sub.add_parser('status', help='Show sync history summary')

    clear = sub.add_parser('clear', help='Clear sync history (all items become unsynced)')
    clear.add_argument('--call-logs', action='store_true', help='Clear call log sync history instead')

    settings = sub.add_parser('settings', help='Save user settings')
    settings.add_argument('--path', dest='recordings_path', help='Recordings folder')
    settings.add_argument('--api-url', dest='api_url', help='API base URL')
    settings.add_argument('--user-id', dest='user_id', help='User ID')
    settings.add_argument('--auto-sync', dest='auto_sync', type=_on_off, help='on/off')
    settings.add_argument('--auto-refresh', dest='auto_refresh', type=_on_off, help='on/off')

    watch = sub.add_parser('watch', help='Rescan (and auto-sync) periodically')
    watch.add_argument('--interval', type=int, default=None, help='Seconds between runs')

    return parser


def run_command(args: argparse.Namespace) -> int:
    if args.command == 'settings':
        changes = {
            key: getattr(args, key)
            for key in ('recordings_path', 'api_url', 'user_id', 'auto_sync', 'auto_refresh')
            if getattr(args, key) is not None
        }
        return 0 if save_settings(changes) else 1

    app = RecordingsApp(load_settings())

    if args.command == 'scan':
        _print_inventory(app.scan(args.path))
        return 0

    if args.command == 'sync':
        recordings = app.scan(args.path)
        report = app.sync_manager.sync_unsynced(recordings)
        print(report.summary())
        print(f"Total synced: {len(app.recordings_store.synced_keys())}/{len(recordings)}")
        return 0 if report.success else 2

    if args.command == 'sync-calls':
        entries = app.call_log_manager.mark_synced_flags(load_call_log_export(args.file))
        report = app.call_log_manager.sync_unsynced(entries)
        print(f"Successfully synced: {report.succeeded}\nFailed: {report.failed}")
        return 0 if report.success else 2

    if args.command == 'call-logs':
        logs = app.call_log_manager.fetch_synced_call_logs(limit=args.limit)
        for log in logs:
            print(f"  {log.get('starttime', '')}  {log.get('phonenumber', '')}  {log.get('type', '')}")
        print(f"\n{len(logs)} call logs on server")
        return 0

    if args.command == 'status':
        for label, store in (('Recordings', app.recordings_store), ('Call logs', app.call_logs_store)):
            last = store.last_sync_at.strftime('%Y-%m-%d %H:%M:%S') if store.last_sync_at else 'never'
            print(f"{label:11}: {len(store.synced_keys())} synced, last sync: {last}")
        return 0

    if args.command == 'clear':
        if args.call_logs:
            cleared = app.call_log_manager.clear_sync_history()
        else:
            cleared = app.sync_manager.clear_sync_history()
        print("Sync history cleared" if cleared else "Failed to clear sync history")
        return 0 if cleared else 1

    if args.command == 'watch':
        interval = args.interval or app.sync_settings.sync_interval_seconds
        scheduler = AutoSyncScheduler(app.scan_and_sync, interval_seconds=interval)
        scheduler.start()
        try:
            while scheduler.is_running():
                time.sleep(1)
        except KeyboardInterrupt:
            scheduler.stop()
        return 0

    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    args = build_parser().parse_args(argv)

    try:
        ensure_directories()
        setup_logging(args.verbose)
        return run_command(args)

    except (MissingUserIdentityError, SyncInProgressError, ValueError) as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
