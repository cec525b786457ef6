"""Idempotent creation of a single directory with exact mode and ownership."""

from __future__ import annotations

from mkhome.infrastructure.logger import logger
from mkhome.provisioning.fs import FsOps, default_fs
from mkhome.provisioning.types import ErrorKind, StepResult


def ensure_directory(path: str, owner_uid: int, owner_gid: int, mode: int, *, fs: FsOps | None = None) -> StepResult:
    """Create ``path`` with ``mode`` and chown it, unless it already exists.

    A pre-existing directory is left exactly as found. A failed chown is
    logged and the directory kept; only stat and mkdir failures are reported
    as failures.
    """
    fs = fs or default_fs

    try:
        fs.stat(path)
    except FileNotFoundError:
        pass
    except OSError as err:
        logger.warning("Error checking directory", path=path, error=str(err))
        return StepResult.fail(ErrorKind.STAT, path, str(err))
    else:
        logger.debug("Directory already exists", path=path)
        return StepResult.ok(path)

    # The given mode is absolute, not subject to the process umask
    prev_mask = fs.umask(0)
    try:
        try:
            fs.mkdir(path, mode)
        except FileExistsError:
            logger.debug("Directory created concurrently", path=path)
            return StepResult.ok(path)
        except OSError as err:
            logger.warning("Error creating directory", path=path, error=str(err))
            return StepResult.fail(ErrorKind.CREATE, path, str(err))
    finally:
        fs.umask(prev_mask)

    try:
        fs.chown(path, owner_uid, owner_gid)
    except OSError as err:
        logger.warning(
            "Error setting directory ownership", path=path, uid=owner_uid, gid=owner_gid, error=str(err)
        )

    logger.debug("Directory created", path=path, mode=f"{mode:04o}")
    return StepResult.ok(path)
