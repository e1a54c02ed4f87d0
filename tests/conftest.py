"""
pytest configuration and fixtures for Portal Quote Builder tests
"""

import pytest
import json
import tempfile
import shutil
from pathlib import Path
import sys

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from utils.config_manager import PortalApiConfig
from utils.logging_manager import logging_manager
from session_store import MemorySessionStore, JsonFileSessionStore, encode_stored_value
from tests.factories import SessionUserFactory, ServiceFactory, PlanFactory


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def api_config():
    """Portal API configuration pointing at a fake backend"""
    return PortalApiConfig(
        base_url="http://portal.test/api",
        timeout_total=5.0,
        timeout_connect=2.0,
        max_connections=2,
    )


@pytest.fixture
def sample_user():
    """A session user with two companies and an assigned agent"""
    return SessionUserFactory.create_user(
        customer_id=77,
        first_name="Asha",
        last_name="Rao",
        email="asha@example.com",
        franchisee_id=12,
        companies=[
            SessionUserFactory.create_company(5, "Acme", agents=[{"EmployeeID": 31, "EmployeeName": "Ravi"}]),
            SessionUserFactory.create_company(9, "Beta"),
        ],
    )


@pytest.fixture
def sample_plan():
    """A plan selection with one service"""
    return PlanFactory.create_plan(
        plan_id=4,
        name="Startup Basic",
        services=[ServiceFactory.create_service(service_id=11, name="GST Filing", professional_fee=2500)],
    )


@pytest.fixture
def memory_store():
    """Empty in-memory session store"""
    return MemorySessionStore()


@pytest.fixture
def user_store(sample_user):
    """In-memory session store holding a serialized session user"""
    return MemorySessionStore({"user": encode_stored_value(sample_user)})


@pytest.fixture
def file_store(temp_dir):
    """File session store in a temporary directory"""
    return JsonFileSessionStore(temp_dir / "session.json")


@pytest.fixture
def session_file(temp_dir, sample_user):
    """Session file on disk that already contains a logged-in user"""
    path = temp_dir / "session.json"
    with open(path, 'w', encoding='utf-8') as f:
        json.dump({"user": json.dumps(sample_user), "partnerToken": "tok-123"}, f)
    return path


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset global metrics between tests"""
    logging_manager.reset_metrics()
    yield
    logging_manager.reset_metrics()
