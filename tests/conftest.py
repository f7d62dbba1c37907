"""Shared fixtures."""

import tempfile

import pytest

from watchtalk.board import DiscussionBoard
from watchtalk.models import Actor
from watchtalk.spoilers import MemoryPreferences
from watchtalk.store import FileStore, MemoryStore


@pytest.fixture
def memory_store():
    """Create an in-memory store."""
    store = MemoryStore()
    yield store
    store.close()


@pytest.fixture
def file_store():
    """Create a temporary file store."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileStore(tmpdir)
        yield store
        store.close()


@pytest.fixture(params=["memory", "file"])
def store(request, memory_store, file_store):
    """Parameterized fixture that runs tests against both stores."""
    if request.param == "memory":
        return memory_store
    return file_store


@pytest.fixture
def board(store):
    """A board on the parameterized store, with English messages."""
    return DiscussionBoard(store, preferences=MemoryPreferences(), locale="en")


@pytest.fixture
def alice():
    return Actor(uid="alice", display_name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Actor(uid="bob", display_name="Bob")


@pytest.fixture
def carol():
    return Actor(uid="carol", email="carol@example.com")
