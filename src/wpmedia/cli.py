# src/wpmedia/cli.py

import os
import sqlite3
import sys
import time
from pathlib import Path

import click
import requests

from wpmedia import __version__
from wpmedia.cleanup import cleanup_media
from wpmedia.store import StoreError

DEFAULT_LOG_DIR = Path.home() / ".logs" / "wpmedia"

_LOG_SETUP = False
_LOG_FILE = None
_LOG_PATH = None
_RUN_HEADER_EMITTED = False
_PIPE_BROKEN = False


class _TeeStream:
    """Terminal stream that mirrors everything into the master log.

    Log write failures are ignored; a broken terminal pipe silences both.
    """

    def __init__(self, terminal, log):
        self._terminal = terminal
        self._log = log
        self.encoding = getattr(terminal, "encoding", "utf-8")

    def _mirror(self, method: str, *args) -> None:
        try:
            getattr(self._log, method)(*args)
        except (OSError, ValueError):
            pass

    def write(self, text):
        global _PIPE_BROKEN
        if _PIPE_BROKEN:
            return 0
        try:
            written = self._terminal.write(text)
        except BrokenPipeError:
            _PIPE_BROKEN = True
            return 0
        self._mirror("write", text)
        return written

    def flush(self):
        global _PIPE_BROKEN
        if _PIPE_BROKEN:
            return
        try:
            self._terminal.flush()
        except BrokenPipeError:
            _PIPE_BROKEN = True
            return
        self._mirror("flush")

    def isatty(self):
        return self._terminal.isatty()

    def fileno(self):
        return self._terminal.fileno()

    def writable(self):
        return True


def _setup_master_log() -> None:
    global _LOG_SETUP, _LOG_FILE, _LOG_PATH
    if _LOG_SETUP:
        return
    _LOG_SETUP = True
    if os.environ.get("WPMEDIA_LOG_DISABLED") == "1":
        return
    log_file = os.environ.get("WPMEDIA_LOG_FILE")
    if log_file:
        log_path = Path(os.path.expanduser(log_file))
    else:
        log_dir = os.environ.get("WPMEDIA_LOG_DIR")
        log_path = (Path(log_dir) if log_dir else DEFAULT_LOG_DIR) / "wpmedia.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _LOG_FILE = open(log_path, "a", encoding="utf-8", buffering=1)
    except OSError:
        # Unwritable log location: run without a master log.
        return
    _LOG_PATH = log_path
    sys.stdout = _TeeStream(sys.stdout, _LOG_FILE)
    sys.stderr = _TeeStream(sys.stderr, _LOG_FILE)


def _emit_run_header() -> None:
    global _RUN_HEADER_EMITTED
    if _RUN_HEADER_EMITTED:
        return
    timestamp = time.strftime("%Y-%m-%dT%H:%M:%S%z")
    script = Path(sys.argv[0]).name or "wpmedia"
    print(f"🧾 {script} v{__version__} @ {timestamp}")
    if _LOG_PATH:
        print(f"🧾 log: {_LOG_PATH}")
    _RUN_HEADER_EMITTED = True


def _open_store(settings: dict):
    """Build the content store selected by the root options."""
    db = settings.get("db")
    url = settings.get("url")
    uploads_dir = settings.get("uploads_dir")

    if bool(db) == bool(url):
        raise click.UsageError("Pass exactly one of --db or --url.")
    if not uploads_dir:
        raise click.UsageError("--uploads-dir is required.")

    if db:
        from wpmedia.wpdb import SQLiteMediaStore
        return SQLiteMediaStore.open(Path(db), uploads_dir)

    if not settings.get("user") or not settings.get("app_password"):
        raise click.UsageError("--url requires --user and --app-password.")
    from wpmedia.rest import RestMediaStore
    return RestMediaStore(url, settings["user"], settings["app_password"], uploads_dir)


@click.group()
@click.version_option(__version__)
@click.option("--db", type=click.Path(exists=True, dir_okay=False), envvar="WPMEDIA_DB",
              help="WordPress SQLite database path.")
@click.option("--url", envvar="WPMEDIA_URL", help="WordPress site URL (REST API).")
@click.option("--user", envvar="WPMEDIA_USER", help="WordPress username for the REST API.")
@click.option("--app-password", envvar="WPMEDIA_APP_PASSWORD", help="Application password for --user.")
@click.option("--uploads-dir", type=click.Path(exists=True, file_okay=False), envvar="WPMEDIA_UPLOADS_DIR",
              help="Local wp-content/uploads directory.")
@click.pass_context
def cli(ctx, db, url, user, app_password, uploads_dir):
    """wpmedia: WordPress media library maintenance"""
    _setup_master_log()
    _emit_run_header()
    ctx.obj = {
        "db": db,
        "url": url,
        "user": user,
        "app_password": app_password,
        "uploads_dir": uploads_dir,
    }


@cli.group()
def media():
    """Media library commands."""
    pass


@media.command("cleanup")
@click.option("--dry-run", is_flag=True,
              help="Run the entire cleanup operation and show report, but don't delete medias.")
@click.pass_obj
def cleanup_cmd(settings, dry_run):
    """
    Remove invalid (nonexistent files) medias.

    \b
    Examples:
      wpmedia --db wp.sqlite --uploads-dir wp-content/uploads media cleanup
      wpmedia --db wp.sqlite --uploads-dir wp-content/uploads media cleanup --dry-run
    """
    try:
        with _open_store(settings) as store:
            cleanup_media(store, dry_run=dry_run)
    except (StoreError, sqlite3.Error, requests.RequestException) as e:
        click.echo(f"❌ Cleanup aborted: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
