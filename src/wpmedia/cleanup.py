"""
Remove attachment records whose file no longer exists on disk.
"""

import os
from dataclasses import dataclass
from typing import Callable, Optional

from wpmedia.progress import ProgressBar
from wpmedia.store import ContentStore, PathResolutionError

# Ask the store to drop its cache after this many records.
CLEAR_OBJECT_CACHE_INTERVAL = 500


def pluralize(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


@dataclass
class CleanupStats:
    """Counters for one cleanup run."""
    total: int = 0
    valid: int = 0
    missing: int = 0
    unresolved: int = 0

    def summary(self) -> str:
        return "Found {} {}, {} {}, {} {} and {} {}.".format(
            self.total, pluralize(self.total, "media", "medias"),
            self.valid, pluralize(self.valid, "valid media", "valid medias"),
            self.missing, pluralize(self.missing, "cleanup media", "cleanup medias"),
            self.unresolved, pluralize(self.unresolved, "skip media", "skip medias"),
        )


def cleanup_media(
    store: ContentStore,
    dry_run: bool = False,
    file_exists: Callable[[str], bool] = os.path.isfile,
    show_progress: Optional[bool] = None,
) -> CleanupStats:
    """
    Check every attachment's file and delete records whose file is gone.

    Records whose path cannot be resolved are counted and left alone.
    Errors raised by the store (other than PathResolutionError) abort the
    run; records already deleted stay deleted.

    Args:
        store: Content store holding the attachment records
        dry_run: Count and report, but never delete
        file_exists: File presence check (default: os.path.isfile)
        show_progress: Force the progress bar on/off (default: TTY only)

    Returns:
        CleanupStats for the run (all zero when the library is empty)
    """
    stats = CleanupStats()
    ids = store.list_attachment_ids()
    stats.total = len(ids)
    if not stats.total:
        print("⚠️  Warning: No media found.")
        return stats

    print(f"🔍 Found {stats.total} {pluralize(stats.total, 'media', 'medias')} to check & cleanup.")
    if dry_run:
        print("🧪 Dry run: no media will be deleted.")

    progress = ProgressBar("Check if media exists", stats.total, enabled=show_progress)
    for number, attachment_id in enumerate(ids, 1):
        if number % CLEAR_OBJECT_CACHE_INTERVAL == 0:
            store.clear_cache()

        try:
            path = store.get_attached_file(attachment_id)
        except PathResolutionError as e:
            progress.write(f"⚠️  Skipping {e}")
            path = None

        if not path:
            stats.unresolved += 1
        elif file_exists(path):
            stats.valid += 1
        else:
            stats.missing += 1
            if not dry_run:
                store.delete_attachment(attachment_id)

        progress.tick(desc=f"#{attachment_id}")

    progress.finish()
    print(f"✅ Success: {stats.summary()}")
    return stats
