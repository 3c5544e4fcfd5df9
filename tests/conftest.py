"""
Pytest configuration and shared fixtures.

Adds the project root (for `api`, `domain`, `repositories`, `services`) and
this directory (for `fakes`) to the Python path, and wires an
`OrderLifecycle` over in-memory collaborators.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import FakeGatewayServer, FakeSupabase, RecordingNotifier, fixed_clock  # noqa: E402
from repositories.order_repository import OrderRepository  # noqa: E402
from repositories.profile_repository import ProfileRepository  # noqa: E402
from repositories.promo_repository import PromoRepository  # noqa: E402
from services.order_service import OrderLifecycle  # noqa: E402


@pytest.fixture
def db() -> FakeSupabase:
    db = FakeSupabase()
    db.add_profile("user-1", "siti@example.com", "Siti Aminah")
    db.add_profile("user-2", "budi@example.com", "Budi")
    db.add_profile("admin-1", "admin@tarjuman.org", "Admin", role="admin")
    return db


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def gateway_server() -> FakeGatewayServer:
    return FakeGatewayServer()


@pytest.fixture
def service(db, notifier, gateway_server) -> OrderLifecycle:
    return OrderLifecycle(
        orders=OrderRepository(db),
        promos=PromoRepository(db),
        profiles=ProfileRepository(db),
        gateway=gateway_server.client(),
        notifier=notifier,
        clock=fixed_clock,
    )
