import pytest
from fastapi.testclient import TestClient

from delivery_service import database
from delivery_service.main import app


CLIENT_PAYLOAD = {
    "name": "Maria Souza",
    "cpf": "123.456.789-00",
    "phone": "11987654321",
    "email": "maria@example.com",
    "address": "Rua das Flores, 100 - Sao Paulo",
}

ORDER_PAYLOAD = {
    "order_date": "2026-10-19T10:00:00",
    "urgency": "normal",
    "distance_km": 10,
    "rate_per_km": 2,
    "weight_kg": 5,
    "rate_per_kg": 3,
}


@pytest.fixture
def api(tmp_path):
    """A delivery service client backed by a fresh SQLite file."""
    database.configure(f"sqlite+aiosqlite:///{tmp_path / 'delivery.db'}", echo=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def create_client(api):
    def _create(**overrides):
        response = api.post("/clients", json={**CLIENT_PAYLOAD, **overrides})
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def create_order(api, create_client):
    def _create(client_id=None, **overrides):
        if client_id is None:
            client_id = create_client()["id"]
        response = api.post("/orders", json={**ORDER_PAYLOAD, "client_id": client_id, **overrides})
        assert response.status_code == 201, response.text
        return response.json()
    return _create
