"""Root conftest: pins the test environment before live_chat.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_TEST_DEFAULTS = {
    # Never reach for Redis from the test suite, whatever .env says.
    "RELAY_FANOUT_ENABLED": "false",
    "LOG_LEVEL": "DEBUG",
}

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for line in _env_test.read_text().splitlines():
        key, sep, value = line.strip().partition("=")
        if sep and not key.startswith("#"):
            os.environ.setdefault(key.strip(), value.strip())

for _key, _value in _TEST_DEFAULTS.items():
    os.environ.setdefault(_key, _value)
