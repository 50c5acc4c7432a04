"""
SQLite-backed WordPress media library.

Reads the `wp_posts` / `wp_postmeta` tables of a WordPress database held in
SQLite. Attachment metadata (`_wp_attachment_metadata`,
`_wp_attachment_backup_sizes`) is PHP-serialized, as WordPress writes it.
"""

import os
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Union

import phpserialize

from wpmedia.migrate import apply_migrations
from wpmedia.store import ContentStore, PathResolutionError, StoreError, resolve_upload_path

ATTACHED_FILE_KEY = "_wp_attached_file"
METADATA_KEY = "_wp_attachment_metadata"
BACKUP_SIZES_KEY = "_wp_attachment_backup_sizes"


def connect_db(path: Path, create: bool = False) -> sqlite3.Connection:
    """
    Open a WordPress SQLite database.

    An existing database is opened read-write as-is. With create=True the
    file is created if needed and the packaged schema migrations are applied.

    Raises:
        StoreError: The database does not exist and create is False
    """
    if create:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(path))
    else:
        if not path.is_file():
            raise StoreError(f"database not found: {path}")
        conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=rw", uri=True)
    conn.row_factory = sqlite3.Row
    if create:
        apply_migrations(conn)
    return conn


def load_php_meta(attachment_id: int, key: str, raw: Optional[str]) -> dict:
    """Decode a PHP-serialized meta value into a dict (empty when absent)."""
    if not raw:
        return {}
    try:
        value = phpserialize.loads(raw.encode("utf-8"), decode_strings=True)
    except ValueError:
        raise PathResolutionError(attachment_id, f"unreadable {key}")
    return value if isinstance(value, dict) else {}


def dump_php_meta(value: dict) -> str:
    return phpserialize.dumps(value).decode("utf-8")


class SQLiteMediaStore(ContentStore):
    """
    Attachment store over a WordPress-schema SQLite database.

    Attributes:
        conn: Open SQLite connection (rows as sqlite3.Row)
        uploads_dir: Uploads base directory used to resolve relative paths
    """

    def __init__(self, conn: sqlite3.Connection, uploads_dir: Union[str, Path]):
        self.conn = conn
        self.uploads_dir = Path(uploads_dir)
        self._meta_cache: Dict[int, Dict[str, str]] = {}

    @classmethod
    def open(cls, db_path: Path, uploads_dir: Union[str, Path], create: bool = False) -> "SQLiteMediaStore":
        return cls(connect_db(Path(db_path), create=create), uploads_dir)

    def close(self) -> None:
        self.conn.close()

    def list_attachment_ids(self) -> List[int]:
        rows = self.conn.execute(
            "SELECT ID FROM wp_posts WHERE post_type = 'attachment' ORDER BY ID"
        ).fetchall()
        return [row["ID"] for row in rows]

    def _post_meta(self, attachment_id: int) -> Dict[str, str]:
        meta = self._meta_cache.get(attachment_id)
        if meta is None:
            rows = self.conn.execute(
                "SELECT meta_key, meta_value FROM wp_postmeta WHERE post_id = ? ORDER BY meta_id",
                (attachment_id,)
            ).fetchall()
            meta = {}
            for row in rows:
                # First value wins, like get_post_meta(..., single=True)
                meta.setdefault(row["meta_key"], row["meta_value"])
            self._meta_cache[attachment_id] = meta
        return meta

    def get_attached_file(self, attachment_id: int) -> Optional[str]:
        return resolve_upload_path(self._post_meta(attachment_id).get(ATTACHED_FILE_KEY), self.uploads_dir)

    def clear_cache(self) -> None:
        self._meta_cache.clear()

    def attachment_files(self, attachment_id: int) -> List[str]:
        """
        List every file belonging to an attachment.

        Intermediate sizes, backup sizes and the original image live in the
        same directory as the main file. The main file comes last. Metadata
        that cannot be decoded is reported and skipped.
        """
        meta = self._post_meta(attachment_id)
        main_file = self.get_attached_file(attachment_id)
        if not main_file:
            return []

        directory = os.path.dirname(main_file)
        decoded = {}
        for key in (METADATA_KEY, BACKUP_SIZES_KEY):
            try:
                decoded[key] = load_php_meta(attachment_id, key, meta.get(key))
            except PathResolutionError as e:
                print(f"⚠️  {e}: removing main file only")
                decoded[key] = {}
        metadata = decoded[METADATA_KEY]
        backups = decoded[BACKUP_SIZES_KEY]

        files = []
        for size in (metadata.get("sizes") or {}).values():
            if isinstance(size, dict) and size.get("file"):
                files.append(os.path.join(directory, size["file"]))
        for size in backups.values():
            if isinstance(size, dict) and size.get("file"):
                files.append(os.path.join(directory, size["file"]))
        if metadata.get("original_image"):
            files.append(os.path.join(directory, metadata["original_image"]))
        files.append(main_file)

        seen = set()
        return [f for f in files if not (f in seen or seen.add(f))]

    def _inside_uploads(self, path: str) -> bool:
        base = os.path.realpath(str(self.uploads_dir))
        return os.path.realpath(path).startswith(base + os.sep)

    def delete_attachment(self, attachment_id: int) -> None:
        """
        Force-delete an attachment: post row, all meta rows, then its files.

        Raises:
            StoreError: No attachment with this id exists
        """
        row = self.conn.execute(
            "SELECT ID FROM wp_posts WHERE ID = ? AND post_type = 'attachment'",
            (attachment_id,)
        ).fetchone()
        if row is None:
            raise StoreError(f"attachment {attachment_id} not found")

        files = self.attachment_files(attachment_id)

        with self.conn:
            self.conn.execute("DELETE FROM wp_postmeta WHERE post_id = ?", (attachment_id,))
            self.conn.execute("DELETE FROM wp_posts WHERE ID = ?", (attachment_id,))
        self._meta_cache.pop(attachment_id, None)

        for path in files:
            if self._inside_uploads(path) and os.path.isfile(path):
                os.remove(path)

    def insert_attachment(self, attached_file: Optional[str], metadata: Optional[dict] = None,
                          backup_sizes: Optional[dict] = None, status: str = "inherit",
                          title: str = "") -> int:
        """
        Insert an attachment record and its meta rows.

        Metadata dicts are written PHP-serialized.

        Returns:
            The new attachment id
        """
        with self.conn:
            cursor = self.conn.execute(
                "INSERT INTO wp_posts (post_title, post_status, post_type) VALUES (?, ?, 'attachment')",
                (title, status)
            )
            attachment_id = cursor.lastrowid
            meta = []
            if attached_file is not None:
                meta.append((ATTACHED_FILE_KEY, attached_file))
            if metadata is not None:
                meta.append((METADATA_KEY, dump_php_meta(metadata)))
            if backup_sizes is not None:
                meta.append((BACKUP_SIZES_KEY, dump_php_meta(backup_sizes)))
            self.conn.executemany(
                "INSERT INTO wp_postmeta (post_id, meta_key, meta_value) VALUES (?, ?, ?)",
                [(attachment_id, key, value) for key, value in meta]
            )
        return attachment_id
