from __future__ import annotations

import pandas as pd
import pytest
import streamlit as st
from gspread.exceptions import WorksheetNotFound

from herogrill import storage


class FakeConnection:
    """GSheetsConnection em memória: uma DataFrame por worksheet."""

    def __init__(self, sheets: dict[str, pd.DataFrame] | None = None):
        self.sheets = {name: df.copy() for name, df in (sheets or {}).items()}
        self.updates: list[str] = []
        self.fail_updates = 0

    def read(self, worksheet: str, ttl=None, **kwargs) -> pd.DataFrame:
        if worksheet not in self.sheets:
            raise WorksheetNotFound(worksheet)
        return self.sheets[worksheet].copy()

    def update(self, worksheet: str, data: pd.DataFrame, **kwargs) -> pd.DataFrame:
        if self.fail_updates:
            self.fail_updates -= 1
            raise ConnectionError("API quota exceeded")
        self.sheets[worksheet] = data.copy()
        self.updates.append(worksheet)
        return data

    def create(self, worksheet: str, data: pd.DataFrame, **kwargs) -> pd.DataFrame:
        self.sheets[worksheet] = data.copy()
        return data

    def writes_to(self, worksheet: str) -> int:
        return self.updates.count(worksheet)


class FlakyConnection(FakeConnection):
    """Leituras de uma worksheet falham as N primeiras vezes (rede, cota)."""

    def __init__(self, sheets: dict[str, pd.DataFrame] | None = None):
        super().__init__(sheets)
        self.read_failures: dict[str, int] = {}

    def fail_reads(self, worksheet: str, times: int = 1) -> None:
        self.read_failures[worksheet] = times

    def read(self, worksheet: str, ttl=None, **kwargs) -> pd.DataFrame:
        if self.read_failures.get(worksheet):
            self.read_failures[worksheet] -= 1
            raise ConnectionError("Read timed out")
        return super().read(worksheet, ttl=ttl, **kwargs)


def _install(monkeypatch, fake: FakeConnection) -> FakeConnection:
    monkeypatch.setattr(storage, "get_conn", lambda: fake)
    monkeypatch.setattr(storage.time, "sleep", lambda _s: None)
    return fake


@pytest.fixture(autouse=True)
def _clear_cache():
    st.cache_data.clear()
    yield
    st.cache_data.clear()


@pytest.fixture
def conn(monkeypatch) -> FakeConnection:
    return _install(monkeypatch, FakeConnection())


@pytest.fixture
def flaky_conn(monkeypatch) -> FlakyConnection:
    return _install(monkeypatch, FlakyConnection())
