"""
Content store interface for attachment records.

The cleanup procedure only ever talks to a ContentStore, so the backing
library (SQLite database, REST API, test double) is passed in explicitly.
"""

import os
import re
from pathlib import Path
from typing import List, Optional, Union

_DRIVE_LETTER = re.compile(r"^[A-Za-z]:[\\/]")


class StoreError(Exception):
    """Fatal content store failure (query, lookup or delete)."""


class PathResolutionError(StoreError):
    """An attachment exists but its file path could not be resolved."""

    def __init__(self, attachment_id: int, reason: str):
        super().__init__(f"attachment {attachment_id}: {reason}")
        self.attachment_id = attachment_id
        self.reason = reason


def is_absolute_upload_path(value: str) -> bool:
    """True when an attached file value is already an absolute path."""
    return value.startswith("/") or value.startswith("\\") or bool(_DRIVE_LETTER.match(value))


def resolve_upload_path(value: Optional[str], uploads_dir: Union[str, Path]) -> Optional[str]:
    """
    Resolve a stored `_wp_attached_file` value to an absolute path.

    Absolute values are returned unchanged; relative values are joined onto
    the uploads base directory. Empty values resolve to None.
    """
    if not value:
        return None
    if is_absolute_upload_path(value):
        return value
    return os.path.join(str(uploads_dir), value)


class ContentStore:
    """
    Attachment-record operations consumed by the cleanup command.

    Subclasses implement listing, path resolution and deletion. Clearing
    the cache is optional and defaults to a no-op.
    """

    def list_attachment_ids(self) -> List[int]:
        """Return every attachment identifier regardless of status."""
        raise NotImplementedError

    def get_attached_file(self, attachment_id: int) -> Optional[str]:
        """
        Return the absolute path of an attachment's primary file.

        Returns None (or an empty string) when the record has no file path.
        May raise PathResolutionError for per-record failures.
        """
        raise NotImplementedError

    def delete_attachment(self, attachment_id: int) -> None:
        """Permanently delete an attachment record and its derived files."""
        raise NotImplementedError

    def clear_cache(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
