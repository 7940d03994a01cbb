"""
Shared pytest fixtures for backend tests.
The engine is stateless, so fixtures only build tasks and an API client.
"""
import pytest
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import Duration, Task, Tier


@pytest.fixture
def make_task():
    """
    Factory for tasks with sensible defaults.
    Category and duration accept plain values ("deep", 60).
    """
    def _make(task_id, title=None, category="deep", duration=60, **fields):
        return Task(
            id=task_id,
            title=title or f"Task {task_id}",
            category=Tier(category),
            duration=Duration(duration),
            **fields,
        )
    return _make


@pytest.fixture
def app_client(monkeypatch):
    """
    Create a test client for the FastAPI app.
    The classifier runs without an API client so /classify never hits the network.
    """
    from fastapi.testclient import TestClient
    import main

    monkeypatch.setattr(main.classifier, "client", None)

    with TestClient(main.app) as client:
        yield client
