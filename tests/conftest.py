"""Shared test fixtures.

The client is created without entering the lifespan, so no Cassandra
connection is attempted; tests put the services they need on app.state.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from comment_moderation.main import create_app


@pytest.fixture
def app() -> FastAPI:
    """Fresh application without initialized services."""
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client for the application."""
    return TestClient(app)
