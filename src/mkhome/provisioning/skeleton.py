"""Populate a new home directory from a skeleton tree, in the manner of /etc/skel."""

from __future__ import annotations

import contextlib
import os
import stat
from typing import TYPE_CHECKING

from mkhome.infrastructure.config import COPY_CHUNK_SIZE
from mkhome.infrastructure.logger import logger
from mkhome.provisioning.directories import ensure_directory
from mkhome.provisioning.fs import FsOps, default_fs
from mkhome.provisioning.types import CloneReport, DirectoryEntryDescriptor, EntryType, ErrorKind, StepResult

if TYPE_CHECKING:
    from collections.abc import Callable

SETID_BITS = stat.S_ISUID | stat.S_ISGID


def strip_setid_bits(mode: int) -> int:
    """Permission bits of ``mode`` without set-user-ID and set-group-ID."""
    return stat.S_IMODE(mode) & ~SETID_BITS


def remap_link_target(link_target: str, source_dir: str, dest_dir: str) -> str:
    """Point a link into the skeleton at the same place in the new tree instead.

    Targets outside ``source_dir`` are returned unchanged.
    """
    prefix = source_dir.rstrip(os.sep) or os.sep
    if link_target != prefix and not link_target.startswith(prefix.rstrip(os.sep) + os.sep):
        return link_target
    remainder = link_target[len(prefix) :].lstrip(os.sep)
    return os.path.join(dest_dir, remainder) if remainder else dest_dir


def describe_entry(name: str, path: str, fs: FsOps) -> DirectoryEntryDescriptor:
    """lstat ``path`` and classify it. Raises OSError if the lstat fails.

    Symlink targets are read here too; an unreadable link is left with
    ``link_target=None`` and reported when it is copied.
    """
    entry = DirectoryEntryDescriptor.from_stat(name, path, fs.lstat(path))
    if entry.type is EntryType.SYMLINK:
        with contextlib.suppress(OSError):
            entry.link_target = fs.readlink(path)
    return entry


class SkeletonCloner:
    """Recursively mirror a skeleton tree into a destination owned by one user.

    Every per-entry failure is logged and recorded in the report; nothing
    short of an unreadable top-level source stops the copy.
    """

    def __init__(
        self,
        owner_uid: int,
        owner_gid: int,
        *,
        fs: FsOps | None = None,
        on_yield: Callable[[], None] | None = None,
        chunk_size: int | None = None,
    ) -> None:
        self._uid = owner_uid
        self._gid = owner_gid
        self._fs = fs or default_fs
        self._on_yield = on_yield
        self._chunk_size = chunk_size or COPY_CHUNK_SIZE
        self._visited: set[tuple[int, int]] = set()
        self._dest_root: tuple[int, int] | None = None
        self._source_top = ""
        self._dest_top = ""

    def _yield(self) -> None:
        if self._on_yield:
            self._on_yield()

    def clone(self, source_dir: str, dest_dir: str) -> CloneReport:
        """Copy the contents of ``source_dir`` into the existing ``dest_dir``."""
        self._visited.clear()
        self._dest_root = None
        self._source_top = source_dir
        self._dest_top = dest_dir
        try:
            dest_st = self._fs.stat(dest_dir)
            self._dest_root = (dest_st.st_dev, dest_st.st_ino)
        except OSError:
            pass
        return self._clone_dir(source_dir, dest_dir)

    def _clone_dir(self, source_dir: str, dest_dir: str) -> CloneReport:
        try:
            src_st = self._fs.stat(source_dir)
            names = self._fs.listdir(source_dir)
        except OSError as err:
            logger.warning("Error copying skeleton files", path=source_dir, error=str(err))
            return CloneReport.fail(ErrorKind.OPEN, source_dir, str(err))

        self._visited.add((src_st.st_dev, src_st.st_ino))

        report = CloneReport.ok(source_dir)
        for name in names:
            self._yield()

            if name in (".", ".."):
                continue

            src_path = os.path.join(source_dir, name)
            dst_path = os.path.join(dest_dir, name)

            try:
                entry = describe_entry(name, src_path, self._fs)
            except OSError as err:
                logger.debug("Unable to stat skeleton entry, skipping", path=src_path, error=str(err))
                report.failures.append(StepResult.fail(ErrorKind.STAT, src_path, str(err)))
                continue

            if entry.type is EntryType.DIRECTORY:
                key = (entry.device, entry.inode)
                if key in self._visited or key == self._dest_root:
                    logger.warning("Skipping skeleton directory already being copied", path=src_path)
                    report.skipped.append(src_path)
                    continue
                if self._planted_non_directory(dst_path):
                    report.failures.append(
                        StepResult.fail(ErrorKind.CREATE, dst_path, "destination exists and is not a directory")
                    )
                    continue
                created = ensure_directory(dst_path, self._uid, self._gid, strip_setid_bits(entry.mode), fs=self._fs)
                if not created.success:
                    report.failures.append(created)
                    continue
                report.copied.append(dst_path)
                report.absorb(self._clone_dir(src_path, dst_path))

            elif entry.type is EntryType.REGULAR_FILE:
                self._record(report, self.copy_file(src_path, dst_path, strip_setid_bits(entry.mode)), dst_path)

            elif entry.type is EntryType.SYMLINK:
                result = self.copy_symlink(self._source_top, src_path, self._dest_top, dst_path, entry.link_target)
                self._record(report, result, dst_path)

            else:
                logger.debug("Skipping skeleton entry", path=src_path, type=entry.type.value)
                report.skipped.append(src_path)

        return report

    def _planted_non_directory(self, dst_path: str) -> bool:
        """True when ``dst_path`` exists as anything but a real directory.

        A symlink left in an existing home must not be followed out of it.
        """
        try:
            st = self._fs.lstat(dst_path)
        except OSError:
            return False
        if stat.S_ISDIR(st.st_mode):
            return False
        logger.warning("Destination exists and is not a directory, skipping", path=dst_path)
        return True

    @staticmethod
    def _record(report: CloneReport, result: StepResult, dst_path: str) -> None:
        if result.success:
            report.copied.append(dst_path)
        else:
            report.failures.append(result)

    def copy_file(self, src: str, dst: str, mode: int) -> StepResult:
        """Stream ``src`` into a newly created ``dst``, then fix owner and mode.

        ``dst`` must not exist; an existing file is never overwritten.
        """
        fs = self._fs
        try:
            src_fd = fs.open_read(src)
        except OSError as err:
            logger.debug("Unable to open skeleton file", path=src, error=str(err))
            return StepResult.fail(ErrorKind.OPEN, src, str(err))

        try:
            try:
                dst_fd = fs.open_exclusive(dst)
            except OSError as err:
                logger.debug("Unable to create destination file", path=dst, error=str(err))
                return StepResult.fail(ErrorKind.OPEN, dst, str(err))

            # Make sure the destination starts empty
            try:
                fs.truncate(dst, 0)
            except OSError as err:
                logger.debug("Unable to truncate destination file", path=dst, error=str(err))

            try:
                result = self._stream(src_fd, dst_fd, dst)

                try:
                    fs.chown(dst, self._uid, self._gid)
                except OSError as err:
                    logger.warning(
                        "Error changing file ownership", path=dst, uid=self._uid, gid=self._gid, error=str(err)
                    )
                    if result.success:
                        result = StepResult.fail(ErrorKind.CHOWN, dst, str(err))

                try:
                    fs.chmod(dst, mode)
                except OSError as err:
                    logger.warning("Error changing file mode", path=dst, mode=f"{mode:04o}", error=str(err))
                    if result.success:
                        result = StepResult.fail(ErrorKind.CHMOD, dst, str(err))
            finally:
                try:
                    fs.close(dst_fd)
                except OSError as err:
                    logger.warning("Error closing destination file", path=dst, error=str(err))
            return result
        finally:
            try:
                fs.close(src_fd)
            except OSError as err:
                logger.warning("Error closing skeleton file", path=src, error=str(err))

    def _stream(self, src_fd: int, dst_fd: int, dst: str) -> StepResult:
        fs = self._fs
        try:
            while True:
                chunk = fs.read(src_fd, self._chunk_size)
                if not chunk:
                    break
                written = fs.write(dst_fd, chunk)
                if written != len(chunk):
                    logger.warning("Short write to destination file", path=dst, expected=len(chunk), written=written)
                    return StepResult.fail(ErrorKind.COPY, dst, f"short write: {written} of {len(chunk)} bytes")
                self._yield()
        except OSError as err:
            logger.warning("Error writing destination file", path=dst, error=str(err))
            return StepResult.fail(ErrorKind.COPY, dst, str(err))
        return StepResult.ok(dst)

    def copy_symlink(
        self, src_dir: str, src_path: str, dst_dir: str, dst_path: str, link_target: str | None = None
    ) -> StepResult:
        """Recreate the link at ``src_path`` as ``dst_path``.

        Links pointing inside ``src_dir`` are rewritten to point inside
        ``dst_dir``. The new link itself is chowned, never its target.
        """
        fs = self._fs
        if link_target is None:
            try:
                link_target = fs.readlink(src_path)
            except OSError as err:
                logger.warning("Error reading link", path=src_path, error=str(err))
                return StepResult.fail(ErrorKind.SYMLINK, src_path, str(err))

        link_target = remap_link_target(link_target, src_dir, dst_dir)

        try:
            fs.symlink(link_target, dst_path)
        except OSError as err:
            logger.warning("Error creating link", target=link_target, path=dst_path, error=str(err))
            return StepResult.fail(ErrorKind.SYMLINK, dst_path, str(err))

        try:
            fs.lchown(dst_path, self._uid, self._gid)
        except OSError as err:
            logger.warning(
                "Error changing link ownership", path=dst_path, uid=self._uid, gid=self._gid, error=str(err)
            )

        return StepResult.ok(dst_path)


def clone_tree(
    source_dir: str,
    dest_dir: str,
    owner_uid: int,
    owner_gid: int,
    *,
    fs: FsOps | None = None,
    on_yield: Callable[[], None] | None = None,
    chunk_size: int | None = None,
) -> CloneReport:
    """Recursively copy ``source_dir`` into ``dest_dir`` owned by the given user."""
    cloner = SkeletonCloner(owner_uid, owner_gid, fs=fs, on_yield=on_yield, chunk_size=chunk_size)
    return cloner.clone(source_dir, dest_dir)
