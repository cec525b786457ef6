"""CreateHome directive parsing and config file loading.

The directive reads ``on|off [<mode>] [skel <path>] [dirmode <mode>]``,
with modes in octal. In the YAML config file it can be given either in
that string form or as a mapping::

    CreateHome: on 0700 skel /etc/skel dirmode 0711

    CreateHome:
      enabled: true
      mode: 0700
      skel: /etc/skel
      dirmode: 711

Mapping modes are read as octal digits, quoted or not.
"""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from mkhome.infrastructure.config import CREATE_HOME_DIRECTIVE
from mkhome.infrastructure.logger import logger
from mkhome.provisioning.types import CreateHomeConfig

if TYPE_CHECKING:
    from pathlib import Path

_TRUE = {"on", "yes", "true", "1"}
_FALSE = {"off", "no", "false", "0"}


def parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"expected on/off, got {value!r}")


def parse_mode(value: str | int) -> int:
    """Octal mode string (``"0700"``, ``"700"``) or an int taken as-is."""
    if isinstance(value, bool):
        raise ValueError(f"invalid mode: {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(value, 8)
    except ValueError as err:
        raise ValueError(f"invalid mode: {value!r}") from err


def parse_create_home_directive(value: str) -> CreateHomeConfig:
    """Parse the string form of the CreateHome directive."""
    args = shlex.split(value)
    if not args:
        raise ValueError(f"{CREATE_HOME_DIRECTIVE}: missing on/off argument")

    fields: dict[str, Any] = {"enabled": parse_bool(args[0])}

    idx = 1
    while idx < len(args):
        arg = args[idx]
        if arg.lower() in ("skel", "dirmode"):
            if idx + 1 >= len(args):
                raise ValueError(f"{CREATE_HOME_DIRECTIVE}: '{arg}' requires a value")
            if arg.lower() == "skel":
                fields["skeleton_source"] = args[idx + 1]
            else:
                fields["intermediate_mode"] = parse_mode(args[idx + 1])
            idx += 2
            continue
        if idx == 1:
            fields["final_mode"] = parse_mode(arg)
            idx += 1
            continue
        raise ValueError(f"{CREATE_HOME_DIRECTIVE}: unknown parameter {arg!r}")

    try:
        return CreateHomeConfig.model_validate(fields)
    except ValidationError as err:
        raise ValueError(f"{CREATE_HOME_DIRECTIVE}: {err}") from err


def _from_mapping(raw: dict[str, Any]) -> CreateHomeConfig:
    unknown = set(raw) - {"enabled", "mode", "dirmode", "skel"}
    if unknown:
        raise ValueError(f"{CREATE_HOME_DIRECTIVE}: unknown keys {sorted(unknown)}")

    enabled = raw.get("enabled", False)
    fields: dict[str, Any] = {"enabled": parse_bool(enabled) if isinstance(enabled, str) else bool(enabled)}
    if raw.get("mode") is not None:
        fields["final_mode"] = parse_mode(raw["mode"])
    if raw.get("dirmode") is not None:
        fields["intermediate_mode"] = parse_mode(raw["dirmode"])
    if raw.get("skel"):
        fields["skeleton_source"] = str(raw["skel"])

    try:
        return CreateHomeConfig.model_validate(fields)
    except ValidationError as err:
        raise ValueError(f"{CREATE_HOME_DIRECTIVE}: {err}") from err


class _ConfigLoader(yaml.SafeLoader):
    """SafeLoader that keeps integer scalars as their source text.

    Modes are octal digits whether or not they carry a leading zero, so
    ``mode: 755`` must not reach the parser as decimal 755.
    """


_ConfigLoader.add_constructor("tag:yaml.org,2002:int", lambda loader, node: loader.construct_scalar(node))


def load_create_home_config(config_path: Path) -> CreateHomeConfig | None:
    """Read the CreateHome directive from a YAML config file.

    Returns None when the file or the directive is absent. Unreadable or
    malformed files raise ValueError.
    """
    if not config_path.exists():
        logger.debug("No config file", path=str(config_path))
        return None

    try:
        raw = yaml.load(config_path.read_text(), Loader=_ConfigLoader) or {}
    except (OSError, yaml.YAMLError) as err:
        raise ValueError(f"Invalid config file {config_path}: {err}") from err
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    directive = raw.get(CREATE_HOME_DIRECTIVE)
    if directive is None:
        return None
    if isinstance(directive, bool):
        return CreateHomeConfig(enabled=directive)
    if isinstance(directive, str):
        return parse_create_home_directive(directive)
    if isinstance(directive, dict):
        return _from_mapping(directive)
    raise ValueError(f"{CREATE_HOME_DIRECTIVE}: unsupported value {directive!r}")
