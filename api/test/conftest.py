import os
import sys

import pytest

# 添加父級目錄到路徑，以便導入模組
current_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.append(os.path.dirname(current_dir))
sys.path.append(current_dir)

from factories import MockSupabase
from utils.local_store import MemoryStore


@pytest.fixture
def mock_supabase():
    return MockSupabase()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def device_backend():
    return MemoryStore()


@pytest.fixture
def client(mock_supabase, device_backend):
    """
    以替身取代 Supabase 與裝置儲存的 TestClient
    """
    from fastapi.testclient import TestClient

    import dependencies
    from main import app

    app.dependency_overrides[dependencies.get_supabase] = lambda: mock_supabase
    app.dependency_overrides[dependencies.get_supabase_service] = lambda: mock_supabase
    app.dependency_overrides[dependencies.get_auth_client] = lambda: mock_supabase
    app.dependency_overrides[dependencies.get_device_backend] = lambda: device_backend

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
