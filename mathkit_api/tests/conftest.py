"""
Pytest configuration and fixtures.

Provides shared fixtures for testing the HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from mathkit_api.main import app


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client"""
    return TestClient(app)
