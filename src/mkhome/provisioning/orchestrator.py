"""CreateHome entry point: build the home path, then copy the skeleton."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mkhome.infrastructure.logger import logger
from mkhome.provisioning.paths import ensure_path
from mkhome.provisioning.privileges import default_privileges, elevated
from mkhome.provisioning.skeleton import clone_tree
from mkhome.provisioning.types import ErrorKind, ProvisionResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from mkhome.provisioning.fs import FsOps
    from mkhome.provisioning.privileges import PrivilegeController
    from mkhome.provisioning.types import CreateHomeConfig, ProvisionRequest


def provision_home(
    target_path: str,
    user_label: str,
    owner_uid: int,
    owner_gid: int,
    config: CreateHomeConfig | None,
    *,
    privileges: PrivilegeController | None = None,
    fs: FsOps | None = None,
    on_yield: Callable[[], None] | None = None,
) -> ProvisionResult:
    """Create a home directory if CreateHome is enabled, doing nothing otherwise."""
    if config is None or not config.enabled:
        return ProvisionResult(success=True, target_path=target_path, skipped=True)

    request = config.to_request(target_path, owner_uid, owner_gid)
    return provision(request, user_label, privileges=privileges, fs=fs, on_yield=on_yield)


def provision(
    request: ProvisionRequest,
    user_label: str,
    *,
    privileges: PrivilegeController | None = None,
    fs: FsOps | None = None,
    on_yield: Callable[[], None] | None = None,
) -> ProvisionResult:
    """Run one provisioning request with elevated privileges.

    Only a failure to establish the home directory itself fails the call.
    Skeleton copy problems are logged and reported in ``skeleton`` but the
    result stays successful.
    """
    privileges = privileges or default_privileges()

    with elevated(privileges):
        path_result = ensure_path(
            request.target_path,
            user_label,
            request.owner_uid,
            request.owner_gid,
            request.intermediate_mode,
            request.final_mode,
            fs=fs,
            on_yield=on_yield,
        )
        if not path_result.success:
            logger.warning("Unable to create home directory", path=request.target_path, user=user_label)
            return ProvisionResult(
                success=False,
                target_path=request.target_path,
                error=ErrorKind.PATH,
                message=path_result.message,
            )

        report = None
        if request.skeleton_source:
            logger.debug("Copying skeleton files", source=request.skeleton_source, path=request.target_path)
            report = clone_tree(
                request.skeleton_source,
                request.target_path,
                request.owner_uid,
                request.owner_gid,
                fs=fs,
                on_yield=on_yield,
            )
            if not report.success:
                logger.debug("Error copying skeleton files", source=request.skeleton_source, error=report.message)

    logger.info("Home directory ready", path=request.target_path, user=user_label)
    return ProvisionResult(success=True, target_path=request.target_path, skeleton=report)
