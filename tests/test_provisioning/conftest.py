"""Shared fixtures for provisioning tests."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from fakes import RecordingFs, RecordingPrivileges

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture()
def rec_fs() -> RecordingFs:
    return RecordingFs()


@pytest.fixture()
def privileges() -> RecordingPrivileges:
    return RecordingPrivileges()


@pytest.fixture(autouse=True)
def _pin_umask() -> Iterator[None]:
    """Run every test under umask 022 and put the original back afterwards."""
    original = os.umask(0o022)
    yield
    os.umask(original)


@pytest.fixture()
def skel(tmp_path: Path) -> Path:
    """A small skeleton tree.

    skel/
      .profile            "export PATH\\n", 0644
      bin/run.sh          "#!/bin/sh\\n", 0755 plus set-user-ID
      .config/app/rc      "rc\\n", 0600
      link-to-profile  -> <skel>/.profile
      link-to-app      -> <skel>/.config/app
      link-outside     -> /etc/hostname
      link-relative    -> .profile
    """
    root = tmp_path / "skel"
    (root / "bin").mkdir(parents=True)
    (root / ".config" / "app").mkdir(parents=True)

    (root / ".profile").write_text("export PATH\n")
    os.chmod(root / ".profile", 0o644)
    (root / "bin" / "run.sh").write_text("#!/bin/sh\n")
    os.chmod(root / "bin" / "run.sh", 0o4755)
    (root / ".config" / "app" / "rc").write_text("rc\n")
    os.chmod(root / ".config" / "app" / "rc", 0o600)

    os.symlink(str(root / ".profile"), root / "link-to-profile")
    os.symlink(str(root / ".config" / "app"), root / "link-to-app")
    os.symlink("/etc/hostname", root / "link-outside")
    os.symlink(".profile", root / "link-relative")
    return root
