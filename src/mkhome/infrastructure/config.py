"""Configuration constants and .env parsing."""

from __future__ import annotations

import os
from pathlib import Path


def read_env_file(keys: list[str]) -> dict[str, str]:
    """Parse .env file and return values for requested keys.

    Does NOT load into os.environ. Callers decide what to do with values.
    """
    env_file = Path.cwd() / ".env"
    try:
        content = env_file.read_text()
    except OSError:
        return {}

    result: dict[str, str] = {}
    wanted = set(keys)

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        eq_idx = trimmed.find("=")
        if eq_idx == -1:
            continue
        key = trimmed[:eq_idx].strip()
        if key not in wanted:
            continue
        value = trimmed[eq_idx + 1 :].strip()
        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        if value:
            result[key] = value

    return result


def _positive_int(raw: str, default: int) -> int:
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


# Read config values from .env (falls back to os.environ).
_env_config = read_env_file(["MKHOME_CONFIG", "MKHOME_COPY_CHUNK_SIZE"])

CONFIG_PATH: Path = Path(os.environ.get("MKHOME_CONFIG") or _env_config.get("MKHOME_CONFIG", "/etc/mkhome.yaml"))

# Bytes read and written per iteration when copying skeleton files
COPY_CHUNK_SIZE: int = _positive_int(
    os.environ.get("MKHOME_COPY_CHUNK_SIZE") or _env_config.get("MKHOME_COPY_CHUNK_SIZE", "1024"), 1024
)

DEFAULT_HOME_MODE: int = 0o700
DEFAULT_DIR_MODE: int = 0o711

# Directive key looked up in the config file
CREATE_HOME_DIRECTIVE: str = "CreateHome"
