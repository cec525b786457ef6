"""Provisioning domain types."""

from __future__ import annotations

import os
import stat
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mkhome.infrastructure.config import DEFAULT_DIR_MODE, DEFAULT_HOME_MODE


def _check_mode(value: int) -> int:
    if value < 0 or value > 0o7777:
        raise ValueError(f"mode {value:o} is not a valid permission mode")
    return value


class ErrorKind(str, Enum):
    STAT = "stat"  # metadata query failed for a reason other than "not found"
    CREATE = "create"
    CHOWN = "chown"
    CHMOD = "chmod"
    OPEN = "open"
    COPY = "copy"
    SYMLINK = "symlink"
    PATH = "path"  # target path could not be established


class EntryType(str, Enum):
    DIRECTORY = "directory"
    REGULAR_FILE = "regular_file"
    SYMLINK = "symlink"
    OTHER = "other"


class CreateHomeConfig(BaseModel):
    """Resolved CreateHome decision record."""

    enabled: bool = False
    final_mode: int = DEFAULT_HOME_MODE
    intermediate_mode: int = DEFAULT_DIR_MODE
    skeleton_source: str | None = None

    @field_validator("final_mode", "intermediate_mode")
    @classmethod
    def check_modes(cls, value: int) -> int:
        return _check_mode(value)

    def to_request(self, target_path: str, owner_uid: int, owner_gid: int) -> ProvisionRequest:
        return ProvisionRequest(
            target_path=target_path,
            owner_uid=owner_uid,
            owner_gid=owner_gid,
            intermediate_mode=self.intermediate_mode,
            final_mode=self.final_mode,
            skeleton_source=self.skeleton_source,
        )


class ProvisionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_path: str
    owner_uid: int = Field(ge=0)
    owner_gid: int = Field(ge=0)
    intermediate_mode: int = DEFAULT_DIR_MODE  # root-owned segments above the home directory
    final_mode: int = DEFAULT_HOME_MODE
    skeleton_source: str | None = None

    @field_validator("final_mode", "intermediate_mode")
    @classmethod
    def check_modes(cls, value: int) -> int:
        return _check_mode(value)


class DirectoryEntryDescriptor(BaseModel):
    """One skeleton entry, classified from an lstat of its source path."""

    name: str
    path: str
    type: EntryType
    mode: int  # permission bits only
    size: int | None = None  # regular files
    link_target: str | None = None  # symlinks
    device: int = 0
    inode: int = 0

    @classmethod
    def from_stat(cls, name: str, path: str, st: os.stat_result) -> DirectoryEntryDescriptor:
        st_mode = st.st_mode
        if stat.S_ISDIR(st_mode):
            entry_type = EntryType.DIRECTORY
        elif stat.S_ISREG(st_mode):
            entry_type = EntryType.REGULAR_FILE
        elif stat.S_ISLNK(st_mode):
            entry_type = EntryType.SYMLINK
        else:
            entry_type = EntryType.OTHER
        return cls(
            name=name,
            path=path,
            type=entry_type,
            mode=stat.S_IMODE(st_mode),
            size=st.st_size if entry_type is EntryType.REGULAR_FILE else None,
            device=st.st_dev,
            inode=st.st_ino,
        )


class StepResult(BaseModel):
    success: bool
    path: str | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def ok(cls, path: str | None = None, **kwargs: object) -> StepResult:
        return cls(success=True, path=path, **kwargs)

    @classmethod
    def fail(cls, error: ErrorKind, path: str | None = None, message: str | None = None, **kwargs: object) -> StepResult:
        return cls(success=False, path=path, error=error, message=message, **kwargs)


class CloneReport(StepResult):
    copied: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failures: list[StepResult] = Field(default_factory=list)

    def absorb(self, other: CloneReport) -> None:
        """Fold a subtree report into this one."""
        self.copied.extend(other.copied)
        self.skipped.extend(other.skipped)
        self.failures.extend(other.failures)
        if not other.success:
            self.failures.append(StepResult.fail(other.error or ErrorKind.OPEN, other.path, other.message))


class ProvisionResult(BaseModel):
    success: bool
    target_path: str
    skipped: bool = False  # CreateHome disabled or unconfigured
    error: ErrorKind | None = None
    message: str | None = None
    skeleton: CloneReport | None = None
