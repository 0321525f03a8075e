import pytest

from stok.infra.store import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()
