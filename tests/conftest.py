"""
Pytest configuration and fixtures for opsdesk tests.

This module provides shared fixtures and configuration for all tests.
"""

import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest
import pytest_asyncio

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "api: API endpoint tests"
    )


# =============================================================================
# Temporary Directories
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def opsdesk_config():
    """Create a test configuration."""
    from opsdesk.config import OpsDeskConfig

    return OpsDeskConfig(
        dataset_root="tank/test/volumes",
        default_page_size=10,
        max_page_size=50,
    )


@pytest_asyncio.fixture
async def volume_ledger():
    """Create an empty VolumeRecordLedger."""
    from opsdesk.docker.records import VolumeRecordLedger

    return VolumeRecordLedger()


@pytest_asyncio.fixture
async def volume_registry(volume_ledger):
    """Create a VolumeRegistry wired to a ledger."""
    from opsdesk.docker.volumes import VolumeRegistry

    return VolumeRegistry(
        default_driver="local",
        dataset_root="tank/test/volumes",
        ledger=volume_ledger,
    )


@pytest_asyncio.fixture
async def operate_log_store():
    """Create an empty OperateLogStore with the default terminal statuses."""
    from opsdesk.saga.operate_log import OperateLogStore

    return OperateLogStore()


@pytest.fixture
def manager(opsdesk_config):
    """Create an OpsDeskManager for API tests."""
    from opsdesk.manager import OpsDeskManager

    return OpsDeskManager(opsdesk_config)


@pytest.fixture
def client(manager):
    """TestClient bound to an app sharing the manager fixture."""
    from fastapi.testclient import TestClient
    from opsdesk.api.rest import create_app

    return TestClient(create_app(manager=manager))


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def volume_params():
    """Minimal valid volume create body."""
    from opsdesk.types import VolumeOperateParams

    return VolumeOperateParams(
        name="alice-data",
        alias="Alice data",
        user_id="1001",
        username="alice",
        volume_type="USER",
        is_builtin=False,
    )


@pytest.fixture
def volume_body() -> dict:
    """Volume create body as the admin console sends it."""
    return {
        "name": "alice-data",
        "alias": "Alice data",
        "userId": "1001",
        "username": "alice",
        "volumeType": "USER",
        "isBuiltin": False,
    }


@pytest.fixture
def saga_context_json() -> str:
    """Serialized saga context with spacing a re-serializer would change."""
    return '{"orderId": 42,  "steps": ["reserve", "charge"], "note": "caf\\u00e9"}'
