"""
Shared pytest fixtures.

Nothing here touches the network: analyzer tests mock the OpenAI client,
server tests use tests/stubs.py, config tests start from a clean env.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from openspool import SpoolData, construct  # noqa: E402


@pytest.fixture
def esun_pla() -> SpoolData:
    return construct("PLA", "#FF5733", "eSun", 190, 220)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every setting config.py reads so each test sets only what it needs."""
    for name in ("OPENAI_API_KEY", "LISTEN_ADDR", "OPENAI_MODEL", "OPENAI_BASE_URL", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
