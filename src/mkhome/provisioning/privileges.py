"""Scoped privilege elevation for the provisioning window."""

from __future__ import annotations

import contextlib
import os
from typing import TYPE_CHECKING, Protocol

from mkhome.infrastructure.logger import logger

if TYPE_CHECKING:
    from collections.abc import Iterator


class PrivilegeController(Protocol):
    def elevate(self) -> None: ...

    def relinquish(self) -> None: ...


class RootPrivileges:
    """Switch the effective uid/gid to root and back.

    Calls nest: only the outermost elevate() switches identity and only the
    matching relinquish() restores it. Requires a real uid of 0.
    """

    def __init__(self) -> None:
        self._depth = 0
        self._saved: tuple[int, int] | None = None

    @property
    def depth(self) -> int:
        return self._depth

    def elevate(self) -> None:
        if self._depth == 0:
            euid, egid = os.geteuid(), os.getegid()
            self._saved = (euid, egid)
            # uid first: changing the gid needs root
            if euid != 0:
                os.seteuid(0)
            if egid != 0:
                try:
                    os.setegid(0)
                except OSError:
                    if euid != 0:
                        os.seteuid(euid)
                    self._saved = None
                    raise
        self._depth += 1

    def relinquish(self) -> None:
        if self._depth == 0:
            return
        self._depth -= 1
        if self._depth > 0 or self._saved is None:
            return
        euid, egid = self._saved
        self._saved = None
        if os.getegid() != egid:
            os.setegid(egid)
        if os.geteuid() != euid:
            os.seteuid(euid)


class NoPrivileges:
    """Used when the process cannot regain root; only tracks nesting."""

    def __init__(self) -> None:
        self.depth = 0

    def elevate(self) -> None:
        self.depth += 1

    def relinquish(self) -> None:
        if self.depth > 0:
            self.depth -= 1


def default_privileges() -> PrivilegeController:
    """RootPrivileges when the real uid is root, otherwise NoPrivileges."""
    if os.getuid() == 0:
        return RootPrivileges()
    logger.debug("Not running as root, provisioning with current identity", uid=os.getuid())
    return NoPrivileges()


@contextlib.contextmanager
def elevated(privileges: PrivilegeController) -> Iterator[None]:
    """Hold elevated privileges for the body; relinquish on every exit path."""
    privileges.elevate()
    try:
        yield
    finally:
        privileges.relinquish()
