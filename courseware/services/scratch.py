"""Per-session scratch directories holding chunk files until assembly."""

import logging
import os
import shutil
import time
import uuid

LOGGER = logging.getLogger(__name__)

ASSEMBLED_NAME = 'assembled'


def session_dir(scratch_root, upload_id):
    return os.path.join(scratch_root, upload_id)


def chunk_path(scratch_dir, chunk_index):
    return os.path.join(scratch_dir, f"chunk-{chunk_index:05d}")


def write_chunk(scratch_dir, chunk_index, data):
    """Write a chunk atomically; a re-upload of the same index replaces it"""
    target = chunk_path(scratch_dir, chunk_index)
    tmp_path = f"{target}.{uuid.uuid4().hex}.tmp"
    with open(tmp_path, 'wb') as f:
        f.write(data)
    os.replace(tmp_path, target)
    return target


def purge_dir(scratch_dir):
    """Best-effort removal; the sweeper retries anything left behind"""
    try:
        shutil.rmtree(scratch_dir)
    except FileNotFoundError:
        return True
    except OSError as e:
        LOGGER.warning("Failed to cleanup scratch dir %s: %s", scratch_dir, e)
        return False
    return True


def sweep_scratch(scratch_root, session_store, max_age, now=None):
    """Delete scratch dirs whose session is gone and that are older than ``max_age``.

    The age guard keeps dirs that were just created by an ``init`` that has
    not stored its session yet.
    """
    if not os.path.isdir(scratch_root):
        return []

    now = now or time.time()
    removed = []
    for entry in os.scandir(scratch_root):
        if not entry.is_dir(follow_symlinks=False):
            continue
        try:
            age = now - entry.stat(follow_symlinks=False).st_mtime
        except FileNotFoundError:
            continue
        if age < max_age or session_store.exists(entry.name):
            continue
        if purge_dir(entry.path):
            LOGGER.info("Cleaned up stale upload scratch dir %s", entry.name)
            removed.append(entry.name)
    return removed
