"""Entry point: python -m mkhome"""

from __future__ import annotations

import argparse
import json
import pwd
import sys
from pathlib import Path

from mkhome.infrastructure.config import CONFIG_PATH
from mkhome.infrastructure.logger import logger
from mkhome.provisioning.directive import load_create_home_config, parse_mode
from mkhome.provisioning.orchestrator import provision_home
from mkhome.types import CreateHomeConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mkhome", description="Create a home directory on demand")
    parser.add_argument("path", help="Home directory to create")
    parser.add_argument("--user", required=True, help="User the directory belongs to")
    parser.add_argument("--uid", type=int, help="Owner uid (default: looked up from --user)")
    parser.add_argument("--gid", type=int, help="Owner gid (default: looked up from --user)")
    parser.add_argument("--config", type=Path, default=CONFIG_PATH, help=f"Config file (default: {CONFIG_PATH})")
    parser.add_argument("--enable", action="store_true", help="Enable CreateHome regardless of the config file")
    parser.add_argument("--skel", help="Skeleton directory to copy into the new home")
    parser.add_argument("--mode", type=parse_mode, help="Octal mode of the home directory")
    parser.add_argument("--dirmode", type=parse_mode, help="Octal mode of created parent directories")
    return parser


def resolve_config(args: argparse.Namespace) -> CreateHomeConfig | None:
    """Config file directive with command-line overrides applied."""
    config = load_create_home_config(args.config)
    overrides: dict[str, object] = {}
    if args.enable:
        overrides["enabled"] = True
    if args.skel:
        overrides["skeleton_source"] = args.skel
    if args.mode is not None:
        overrides["final_mode"] = args.mode
    if args.dirmode is not None:
        overrides["intermediate_mode"] = args.dirmode

    if config is None:
        if not overrides:
            return None
        config = CreateHomeConfig()
    return CreateHomeConfig.model_validate({**config.model_dump(), **overrides})


def resolve_owner(user: str, uid: int | None, gid: int | None) -> tuple[int, int]:
    if uid is not None and gid is not None:
        return uid, gid
    entry = pwd.getpwnam(user)
    return (entry.pw_uid if uid is None else uid), (entry.pw_gid if gid is None else gid)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
    except ValueError as err:
        logger.error("Invalid configuration", path=str(args.config), error=str(err))
        return 2

    try:
        uid, gid = resolve_owner(args.user, args.uid, args.gid)
    except KeyError:
        logger.error("Unknown user", user=args.user)
        return 2

    result = provision_home(args.path, args.user, uid, gid, config)
    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0 if result.success else 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
