from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from notelinks_api.dependencies import clear_caches


@pytest.fixture(autouse=True)
def clear_dependency_caches():
    clear_caches()
    yield
    clear_caches()


@pytest.fixture
def client(tmp_path, monkeypatch) -> TestClient:
    monkeypatch.setenv("VAULT_DIR", str(tmp_path))
    monkeypatch.delenv("API_AUTH_MODE", raising=False)
    monkeypatch.delenv("API_AUTH_TOKEN", raising=False)

    from main import create_app

    return TestClient(create_app(), headers={"X-User-ID": "alice"})
