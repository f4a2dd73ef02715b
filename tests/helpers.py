"""
tests/helpers.py -- Constants and small doubles shared by the test modules.

Fixtures live in conftest.py; plain values that tests import by name live here.
"""

from __future__ import annotations

# 44 characters -- comfortably above the 32-character floor.
TEST_KEY = "clave-super-secreta-con-mas-de-32-caracteres"
NOW = 1750021744


class FakeClock:
    """Callable returning a settable Unix time, in seconds."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now
