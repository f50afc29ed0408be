"""
Shared fixtures for the sourcing API tests.
"""

import pytest
from fastapi.testclient import TestClient

from manupilot.database import InMemoryDataStore
from manupilot.main import create_app
from manupilot.services.sourcing import LLMQuoteAnalyzer
from manupilot.utils.ai_client import ScriptedCompletionClient
from manupilot.utils.security import create_access_token

USER_ID = "7d0c3c52-94a4-4f4e-9d2a-2f5f3b1d8a10"
OTHER_USER_ID = "c1f2b7de-1111-4c7d-8f00-2b0d6f7e9a33"


@pytest.fixture
def store():
    """Empty in-memory data store."""
    return InMemoryDataStore()


@pytest.fixture
def partners(store):
    """Manufacturer directory with one non-manufacturer partner."""
    return store.seed("partners", [
        {
            "name": "Shenzhen Alu Works",
            "type": "manufacturer",
            "description": "Precision aluminum parts for outdoor furniture",
            "capabilities": ["Aluminum Extrusion", "CNC Machining"],
            "region": "China",
            "rating": 4.6,
            "image_url": None,
            "logo_url": "https://cdn.example.com/alu.png",
        },
        {
            "name": "Dhaka Sewing Co",
            "type": "manufacturer",
            "description": "Soft goods and bags",
            "capabilities": ["Textile Cut & Sew"],
            "region": "Bangladesh",
            "rating": 4.1,
            "image_url": None,
            "logo_url": None,
        },
        {
            "name": "Aluminum Freight Agents",
            "type": "agent",
            "description": "Sourcing agent for aluminum goods",
            "capabilities": ["Aluminum sourcing"],
            "region": "China",
            "rating": 3.9,
            "image_url": None,
            "logo_url": None,
        },
    ])


@pytest.fixture
def project(store):
    """Project owned by the authenticated test user."""
    [row] = store.seed("projects", [{"user_id": USER_ID, "title": "Camp Table", "specs": {}}])
    return row


@pytest.fixture
def completion_client():
    """Completion client with nothing queued."""
    return ScriptedCompletionClient()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(USER_ID)}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token(OTHER_USER_ID)}"}


@pytest.fixture
def client(store, completion_client):
    """Test client wired to the in-memory store and scripted completions."""
    app = create_app(
        store=store,
        completion_client=completion_client,
        quote_analyzer=LLMQuoteAnalyzer(completion_client),
    )
    with TestClient(app) as c:
        yield c
