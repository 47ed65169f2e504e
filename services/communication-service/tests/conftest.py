"""
Pytest fixtures for communication service tests
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from app.models.messages import Destination
from app.utils.broker import Publisher

API_KEY = "test-api-key"
FIXED_DATE = datetime(2024, 5, 17, 12, 30, 45, 123000, tzinfo=timezone.utc)


class RecordingPublisher(Publisher):
    """Publisher that keeps every payload in memory"""

    def __init__(self):
        self.published: List[Tuple[Destination, bytes]] = []
        self.connected = True

    def connect(self) -> None:
        self.connected = True

    def close(self) -> None:
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def publish(self, destination: Destination, payload: bytes) -> None:
        self.published.append((destination, payload))

    def messages(self) -> List[Dict[str, Any]]:
        return [json.loads(payload) for _, payload in self.published]


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def gateway(publisher):
    """Gateway over the default registry and routes with a fixed clock"""
    from app.services.gateway import DispatchGateway

    return DispatchGateway(publisher=publisher, api_key=API_KEY, clock=lambda: FIXED_DATE)


@pytest.fixture
def client(gateway):
    """Test client with the gateway dependency replaced"""
    from app.main import app
    from app.routes.messages import get_gateway

    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"x-api-key": API_KEY, "Content-Type": "application/json"}


@pytest.fixture
def sample_user() -> Dict[str, Any]:
    """User record accepted by responseAppUsers"""
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "username": "ada",
        "email": "ada@example.com",
        "profilePicture": "https://example.com/ada.png",
        "plan": "FREE",
    }


@pytest.fixture
def valid_messages(sample_user) -> Dict[str, Dict[str, Any]]:
    """One accepted message per registered operationId"""
    return {
        "requestAppUsers": {"usernames": ["testuser1", "testuser2"]},
        "notificationNewPlanPayment": {"username": "testUser", "plan": "ADVANCED"},
        "notificationUserDeletion": {"username": "testUser"},
        "publishNewCourseAccess": {"username": "testUser", "courseId": "course-1"},
        "publishNewMaterialAccess": {"username": "testUser", "materialId": "material-1"},
        "responseAppClassesAndMaterials": {
            "courseId": "course-1",
            "classIds": ["class-1"],
            "materialIds": ["material-1"],
        },
        "notificationNewClass": {"classId": "class-1", "courseId": "course-1"},
        "notificationDeleteClass": {"classId": "class-1"},
        "notificationAssociateMaterial": {"materialId": "material-1", "courseId": "course-1"},
        "notificationDisassociateMaterial": {"materialId": "material-1", "courseId": "course-1"},
        "requestMaterialReviews": {"materialId": "material-1"},
        "responseMaterialReviews": {"materialId": "material-1", "review": 4},
        "responseAppUsers": {"users": [sample_user]},
        "requestAppClassesAndMaterials": {"courseId": "course-1"},
        "notificationDeleteCourse": {"courseId": "course-1", "classIds": [], "materialIds": []},
    }
