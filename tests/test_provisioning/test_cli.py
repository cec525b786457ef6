"""Tests for the mkhome command line."""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING

import pytest

from mkhome.__main__ import main

if TYPE_CHECKING:
    from pathlib import Path


def _owner_args() -> list[str]:
    return ["--uid", str(os.getuid()), "--gid", str(os.getgid())]


class TestMain:
    def test_unconfigured_does_nothing(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        target = tmp_path / "home" / "alice"

        code = main([str(target), "--user", "alice", "--config", str(tmp_path / "none.yaml"), *_owner_args()])

        assert code == 0
        assert not target.exists()
        assert json.loads(capsys.readouterr().out)["skipped"] is True

    def test_config_file_enables(self, tmp_path: Path, skel: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = tmp_path / "mkhome.yaml"
        config.write_text(f"CreateHome: on 0750 skel {skel} dirmode 0755\n")
        target = tmp_path / "home" / "alice"

        code = main([str(target), "--user", "alice", "--config", str(config), *_owner_args()])

        assert code == 0
        assert target.is_dir()
        assert os.stat(target).st_mode & 0o7777 == 0o750
        assert (target / ".profile").read_text() == "export PATH\n"
        out = json.loads(capsys.readouterr().out)
        assert out["success"] is True
        assert out["skeleton"]["success"] is True

    def test_flags_override_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = tmp_path / "mkhome.yaml"
        config.write_text("CreateHome: off\n")
        target = tmp_path / "home" / "alice"

        code = main([str(target), "--user", "alice", "--config", str(config), "--enable", "--mode", "0710", *_owner_args()])

        assert code == 0
        assert os.stat(target).st_mode & 0o7777 == 0o710

    def test_invalid_config_exits_2(self, tmp_path: Path) -> None:
        config = tmp_path / "mkhome.yaml"
        config.write_text("CreateHome: sometimes\n")

        code = main([str(tmp_path / "home"), "--user", "alice", "--config", str(config), *_owner_args()])

        assert code == 2

    def test_malformed_config_exits_2(self, tmp_path: Path) -> None:
        config = tmp_path / "mkhome.yaml"
        config.write_text("CreateHome: [on\n")

        code = main([str(tmp_path / "home"), "--user", "alice", "--config", str(config), *_owner_args()])

        assert code == 2
        assert not (tmp_path / "home").exists()

    def test_unknown_user_exits_2(self, tmp_path: Path) -> None:
        code = main([str(tmp_path / "home"), "--user", "no-such-user-mkhome", "--enable", "--config", str(tmp_path / "x")])

        assert code == 2
