"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest
from fakes import SleepRecorder

_ENV_PREFIXES = ("NARRATOR_MASTER_", "OPENAI_API_KEY")


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def clean_env(monkeypatch):
    """Drop every narrator-master variable inherited from the host environment."""

    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch
