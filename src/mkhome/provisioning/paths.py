"""Walk a target path, creating each missing segment."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from mkhome.infrastructure.logger import logger
from mkhome.provisioning.directories import ensure_directory
from mkhome.provisioning.fs import FsOps, default_fs
from mkhome.provisioning.types import ErrorKind, StepResult

if TYPE_CHECKING:
    from collections.abc import Callable

ROOT_UID = 0
ROOT_GID = 0


def split_path(full_path: str) -> list[str]:
    """Accumulated prefixes of ``full_path``, anchored at the root.

    ``/home/a/b`` gives ``["/home", "/home/a", "/home/a/b"]``. Empty
    components from doubled or trailing separators are dropped.
    """
    prefixes: list[str] = []
    current = os.sep
    for part in full_path.split(os.sep):
        if not part:
            continue
        current = os.path.join(current, part)
        prefixes.append(current)
    return prefixes


def _exists(fs: FsOps, path: str) -> bool:
    try:
        fs.stat(path)
    except OSError:
        return False
    return True


def ensure_path(
    full_path: str,
    user_label: str,
    owner_uid: int,
    owner_gid: int,
    intermediate_mode: int,
    final_mode: int,
    *,
    fs: FsOps | None = None,
    on_yield: Callable[[], None] | None = None,
) -> StepResult:
    """Make sure every directory along ``full_path`` exists.

    Intermediate segments are created root-owned with ``intermediate_mode``;
    the last segment is owned by ``owner_uid``/``owner_gid`` with
    ``final_mode``. A failing segment is logged and the walk goes on; the
    call fails only if the full path is still missing afterwards.
    """
    fs = fs or default_fs

    if _exists(fs, full_path):
        return StepResult.ok(full_path)

    logger.debug("Creating home directory", path=full_path, user=user_label)

    segments = split_path(full_path)
    for idx, segment in enumerate(segments):
        if idx == len(segments) - 1:
            result = ensure_directory(segment, owner_uid, owner_gid, final_mode, fs=fs)
        else:
            result = ensure_directory(segment, ROOT_UID, ROOT_GID, intermediate_mode, fs=fs)

        if not result.success:
            logger.warning("Could not create path segment", path=segment, error=result.error)

        if on_yield:
            on_yield()

    if not segments or not _exists(fs, full_path):
        return StepResult.fail(ErrorKind.PATH, full_path, f"home directory for {user_label} was not created")

    logger.debug("Home directory created", path=full_path, user=user_label)
    return StepResult.ok(full_path)
