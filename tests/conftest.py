"""Test configuration ensuring the project source tree is importable."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
FIXTURES = Path(__file__).resolve().parent / "fixtures"

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


@pytest.fixture
def server_dump_path() -> Path:
    """Dump of a small HTTP server with two near-identical handlers."""

    return FIXTURES / "server_dump.txt"


@pytest.fixture(autouse=True)
def _no_goroot(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the library-root defaults independent of the developer's machine.
    monkeypatch.delenv("GOROOT", raising=False)
