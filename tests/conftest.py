"""Shared pytest configuration: headless plotting and a clean environment."""

import matplotlib

matplotlib.use("Agg")

import pytest


@pytest.fixture(autouse=True)
def clean_truthtable_env(monkeypatch):
    """Keep TRUTHTABLE_* variables of the calling shell out of the tests."""
    for name in (
        "TRUTHTABLE_MAX_VARIABLES",
        "TRUTHTABLE_TRUE_MARKER",
        "TRUTHTABLE_FALSE_MARKER",
        "TRUTHTABLE_STRICT",
    ):
        monkeypatch.delenv(name, raising=False)
