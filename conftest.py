"""Pins chat_sync settings for the test run before chat_sync.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_ROOT = Path(__file__).resolve().parent


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for raw in path.read_text().splitlines():
        entry = raw.strip()
        if not entry or entry.startswith("#") or "=" not in entry:
            continue
        key, _, value = entry.partition("=")
        os.environ.setdefault(key.strip(), value.strip())


_load_env_file(_ROOT / ".env.test")
# Never let a developer's real token reach the tests.
os.environ["CHAT_TOKEN"] = ""
