"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


# Ensure the application package is importable when running tests without an
# editable install. ``picker`` sits at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def sample_rows() -> list[list[str]]:
    return [
        ["1", "2003", "Dinosaur Planet"],
        ["2", "2004", "Isle of Man TT 2004 Review"],
        ["3", "1997", "Character"],
        ["4", "1994", "Paula Abdul's Get Up & Dance"],
        ["5", "2004", "The Rise and Fall of ECW"],
        ["6", "1997", "Sick"],
        ["7", "1992", "8 Man"],
        ["8", "2004", "What the #$*! Do We Know!?"],
    ]
