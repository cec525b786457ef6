"""Tests for the CreateHome entry point."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from fakes import OWNER_GID, OWNER_UID, RecordingFs, RecordingPrivileges, file_mode
from pydantic import ValidationError

from mkhome.provisioning.orchestrator import provision, provision_home
from mkhome.provisioning.types import CreateHomeConfig, ErrorKind, ProvisionRequest

if TYPE_CHECKING:
    from pathlib import Path


class MkdirDeniedFs(RecordingFs):
    def mkdir(self, path: str, mode: int) -> None:
        self.mkdirs.append(path)
        raise PermissionError(13, "Permission denied", path)


class ExplodingFs(RecordingFs):
    def stat(self, path: str) -> os.stat_result:
        raise RuntimeError("unexpected")


class TestProvisionHome:
    def test_unconfigured_is_silent_success(self, tmp_path: Path, rec_fs: RecordingFs, privileges: RecordingPrivileges) -> None:
        target = tmp_path / "home" / "alice"

        result = provision_home(str(target), "alice", OWNER_UID, OWNER_GID, None, privileges=privileges, fs=rec_fs)

        assert result.success is True
        assert result.skipped is True
        assert not target.exists()
        assert privileges.events == []

    def test_disabled_is_silent_success(self, tmp_path: Path, rec_fs: RecordingFs, privileges: RecordingPrivileges) -> None:
        target = tmp_path / "home" / "alice"
        config = CreateHomeConfig(enabled=False, skeleton_source=str(tmp_path))

        result = provision_home(str(target), "alice", OWNER_UID, OWNER_GID, config, privileges=privileges, fs=rec_fs)

        assert result.success is True
        assert result.skipped is True
        assert not target.exists()
        assert rec_fs.mkdirs == []

    def test_creates_home_and_copies_skeleton(
        self, tmp_path: Path, skel: Path, rec_fs: RecordingFs, privileges: RecordingPrivileges
    ) -> None:
        target = tmp_path / "home" / "alice"
        config = CreateHomeConfig(enabled=True, final_mode=0o700, intermediate_mode=0o711, skeleton_source=str(skel))

        result = provision_home(str(target), "alice", OWNER_UID, OWNER_GID, config, privileges=privileges, fs=rec_fs)

        assert result.success is True
        assert result.skipped is False
        assert file_mode(target) == 0o700
        assert file_mode(tmp_path / "home") == 0o711
        assert rec_fs.chowns[str(target)] == (OWNER_UID, OWNER_GID)
        assert rec_fs.chowns[str(tmp_path / "home")] == (0, 0)
        assert (target / ".profile").read_text() == "export PATH\n"
        assert result.skeleton is not None
        assert result.skeleton.success is True
        assert privileges.events == ["elevate", "relinquish"]

    def test_no_skeleton_configured(self, tmp_path: Path, rec_fs: RecordingFs, privileges: RecordingPrivileges) -> None:
        target = tmp_path / "home" / "alice"

        result = provision_home(
            str(target), "alice", OWNER_UID, OWNER_GID, CreateHomeConfig(enabled=True), privileges=privileges, fs=rec_fs
        )

        assert result.success is True
        assert result.skeleton is None
        assert list(target.iterdir()) == []


class TestProvision:
    def test_path_failure_aborts_before_skeleton(self, tmp_path: Path, skel: Path, privileges: RecordingPrivileges) -> None:
        fs = MkdirDeniedFs()
        request = ProvisionRequest(
            target_path=str(tmp_path / "home" / "alice"),
            owner_uid=OWNER_UID,
            owner_gid=OWNER_GID,
            skeleton_source=str(skel),
        )

        result = provision(request, "alice", privileges=privileges, fs=fs)

        assert result.success is False
        assert result.error == ErrorKind.PATH
        assert result.skeleton is None
        assert fs.listed == []
        assert privileges.events == ["elevate", "relinquish"]

    def test_skeleton_failure_does_not_fail_provisioning(
        self, tmp_path: Path, rec_fs: RecordingFs, privileges: RecordingPrivileges
    ) -> None:
        request = ProvisionRequest(
            target_path=str(tmp_path / "home" / "alice"),
            owner_uid=OWNER_UID,
            owner_gid=OWNER_GID,
            skeleton_source=str(tmp_path / "missing-skel"),
        )

        result = provision(request, "alice", privileges=privileges, fs=rec_fs)

        assert result.success is True
        assert result.skeleton is not None
        assert result.skeleton.success is False
        assert result.skeleton.error == ErrorKind.OPEN
        assert (tmp_path / "home" / "alice").is_dir()

    def test_rerun_after_partial_copy_skips_existing(
        self, tmp_path: Path, skel: Path, rec_fs: RecordingFs, privileges: RecordingPrivileges
    ) -> None:
        target = tmp_path / "home" / "alice"
        request = ProvisionRequest(target_path=str(target), owner_uid=OWNER_UID, owner_gid=OWNER_GID, skeleton_source=str(skel))

        first = provision(request, "alice", privileges=privileges, fs=rec_fs)
        (target / ".profile").write_text("edited\n")
        second = provision(request, "alice", privileges=privileges, fs=rec_fs)

        assert first.success is True
        assert second.success is True
        # files already in the home are never overwritten
        assert second.skeleton is not None
        assert str(target / ".profile") in [f.path for f in second.skeleton.failures]
        assert (target / ".profile").read_text() == "edited\n"

    def test_privileges_released_on_unexpected_error(self, tmp_path: Path, privileges: RecordingPrivileges) -> None:
        request = ProvisionRequest(target_path=str(tmp_path / "home"), owner_uid=OWNER_UID, owner_gid=OWNER_GID)

        with pytest.raises(RuntimeError):
            provision(request, "alice", privileges=privileges, fs=ExplodingFs())

        assert privileges.events == ["elevate", "relinquish"]

    def test_request_is_immutable(self, tmp_path: Path) -> None:
        request = ProvisionRequest(target_path=str(tmp_path), owner_uid=1, owner_gid=1)

        with pytest.raises(ValidationError):
            request.target_path = "/elsewhere"  # type: ignore[misc]

    def test_request_rejects_bad_mode(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            ProvisionRequest(target_path=str(tmp_path), owner_uid=1, owner_gid=1, final_mode=0o17777)
