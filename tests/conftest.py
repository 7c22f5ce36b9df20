"""
Pytest configuration and fixtures for workstation tests.

Every test gets a fresh in-memory store and local change bus, so no state
leaks between tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from shared.infrastructure.events import LocalChangeBus
from shared.infrastructure.store import InMemoryBackend, SessionStore
from shared.security.password import hash_pin
from shared.security.rate_limit import limiter
from workstation_api.main import create_app
from workstation_api.routers._common import SCOPE_HEADER
from workstation_api.services.domain import (
    CashRegisterService,
    MillisecondIds,
    OrderService,
    RestaurantRoster,
    WaitlistService,
)


R1 = "bistro-central"
R2 = "bistro-praia"
DIGITAL = "cafe-digital"


TEST_RESTAURANTS: list[dict] = [
    {
        "id": R1,
        "name": "Bistrô Central",
        "plan": "Completo",
        "employees": [
            {"id": "e1", "login": "1234", "password": "5678", "name": "Ana Souza", "role": "Caixa"},
            {"id": "e2", "login": "2222", "password": "1111", "name": "Bruno Lima", "role": "Cozinha"},
            {"id": "e3", "login": "3333", "password": "1111", "name": "Carla Dias", "role": "Recepção"},
            {"id": "e4", "login": "4444", "password": "1111", "name": "Davi Rocha", "role": "Garçom"},
            {"id": "e5", "login": "5555", "password": "1111", "name": "Eva Nunes", "role": "Entregador"},
        ],
    },
    {
        "id": R2,
        "name": "Bistrô da Praia",
        "plan": "Completo",
        "employees": [
            {"id": "e6", "login": "7777", "password": hash_pin("4321"), "name": "Fábio Melo", "role": "Caixa"},
        ],
    },
    {
        "id": DIGITAL,
        "name": "Café Digital",
        "plan": "Digital",
        "employees": [
            {"id": "e7", "login": "8888", "password": "1111", "name": "Gabi Reis", "role": "Caixa"},
            {"id": "e8", "login": "9999", "password": "1111", "name": "Hugo Pires", "role": "Recepção"},
        ],
    },
]


class ManualClock:
    """Virtual wall clock for domain services."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 6, 10, 18, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class MonotonicClock:
    """Virtual monotonic clock for refresh timers."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Login rate limit counters are process-wide; start every test clean."""
    limiter.reset()
    yield


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def bus():
    return LocalChangeBus()


@pytest.fixture
def store(backend, bus):
    store = SessionStore(backend, bus)
    yield store
    store.close()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def monotonic_clock():
    return MonotonicClock()


@pytest.fixture
def roster(store):
    return RestaurantRoster(store, seed=TEST_RESTAURANTS)


@pytest.fixture
def cash_service(store, clock):
    return CashRegisterService(store, clock=clock, ids=MillisecondIds())


@pytest.fixture
def order_service(store, clock, cash_service):
    return OrderService(store, cash_service=cash_service, clock=clock, ids=MillisecondIds())


@pytest.fixture
def waitlist_service(store, clock):
    return WaitlistService(store, clock=clock)


@pytest.fixture
def recorded_topics(bus):
    """Topics published on the bus during the test, in order."""
    topics: list[str] = []
    for topic in ("cashSessionsChanged", "ordersChanged", "waitlistChanged", "restaurantsChanged"):
        bus.subscribe(topic, topics.append)
    return topics


@pytest.fixture
def client(store):
    """Test client over the injected in-memory store and test roster."""
    app = create_app(store=store, roster_seed=TEST_RESTAURANTS)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login_as(client):
    """
    Log an employee in and return the headers carrying the signed scope
    token the server issued.
    """

    def _login(restaurant_id: str, login: str, pin: str) -> dict[str, str]:
        response = client.post(
            f"/api/restaurants/{restaurant_id}/auth/login",
            json={"login": login, "pin": pin},
        )
        assert response.status_code == 200, f"Login failed: {response.json()}"
        return {SCOPE_HEADER: response.json()["scope_token"]}

    return _login


@pytest.fixture
def cashier_headers(login_as):
    return login_as(R1, "1234", "5678")


@pytest.fixture
def reception_headers(login_as):
    return login_as(R1, "3333", "1111")


@pytest.fixture
def waiter_headers(login_as):
    return login_as(R1, "4444", "1111")


@pytest.fixture
def kitchen_headers(login_as):
    return login_as(R1, "2222", "1111")
