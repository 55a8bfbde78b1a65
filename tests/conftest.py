from __future__ import annotations

import os

import pytest

from panelcore.core.config import LockConfig, SessionConfig
from panelcore.core.locks.manager import LockManager
from panelcore.core.locks.store import LockStore
from panelcore.core.sessions.manager import SessionManager
from tests.helpers.fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lock_store_path(tmp_path):
    return os.path.join(str(tmp_path), "locks", "active_locks.json")


@pytest.fixture
def lock_manager(lock_store_path, clock):
    lm = LockManager(cfg=LockConfig(store_path=lock_store_path), now=clock)
    assert lm.begin() is True
    return lm


@pytest.fixture
def session_manager(lock_manager, clock):
    return SessionManager(lock_manager=lock_manager, cfg=SessionConfig(), now=clock)


@pytest.fixture
def lock_store(lock_store_path):
    store = LockStore(lock_store_path)
    store.ensure()
    return store
