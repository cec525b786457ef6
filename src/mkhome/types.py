"""Barrel re-export of all domain types."""

from mkhome.provisioning.types import (
    CloneReport,
    CreateHomeConfig,
    DirectoryEntryDescriptor,
    EntryType,
    ErrorKind,
    ProvisionRequest,
    ProvisionResult,
    StepResult,
)

__all__ = [
    "CloneReport",
    "CreateHomeConfig",
    "DirectoryEntryDescriptor",
    "EntryType",
    "ErrorKind",
    "ProvisionRequest",
    "ProvisionResult",
    "StepResult",
]
