"""Settings are read at import time, so the test environment is loaded first."""
from __future__ import annotations

import os
from pathlib import Path

ENV_FILE = Path(__file__).resolve().parent / ".env.test"


def _read_env_file(path: Path) -> dict[str, str]:
    entries: dict[str, str] = {}
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if line and not line.startswith("#") and "=" in line:
            key, value = line.split("=", 1)
            entries[key.strip()] = value.strip()
    return entries


if ENV_FILE.exists():
    for key, value in _read_env_file(ENV_FILE).items():
        os.environ.setdefault(key, value)
