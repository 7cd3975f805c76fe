import pytest
from fastapi.testclient import TestClient

from pricing_service.main import app


@pytest.fixture(scope="module")
def pricing():
    with TestClient(app) as test_client:
        yield test_client


def test_health(pricing):
    assert pricing.get("/health").json() == {"status": "healthy"}


def test_calculate_cost_returns_full_breakdown(pricing):
    response = pricing.post(
        "/calculate_cost",
        json={"distance_km": 200, "rate_per_km": 3, "weight_kg": 10, "rate_per_kg": 5, "urgency": "URGENT"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "distance_cost": 600.0,
        "weight_cost": 50.0,
        "base_cost": 650.0,
        "surcharge": 130.0,
        "discount": 78.0,
        "extra_fee": 0.0,
        "final_cost": 702.0,
    }


def test_urgency_defaults_to_normal(pricing):
    response = pricing.post(
        "/calculate_cost",
        json={"distance_km": 10, "rate_per_km": 1, "weight_kg": 60, "rate_per_kg": 1},
    )

    assert response.status_code == 200
    assert response.json()["extra_fee"] == 15
    assert response.json()["final_cost"] == 85


@pytest.mark.parametrize(
    "body",
    [
        {"distance_km": -5, "rate_per_km": 1, "weight_kg": 1, "rate_per_kg": 1},
        {"distance_km": 0, "rate_per_km": 1, "weight_kg": 1, "rate_per_kg": 1},
        {"distance_km": "far", "rate_per_km": 1, "weight_kg": 1, "rate_per_kg": 1},
        {"rate_per_km": 1, "weight_kg": 1, "rate_per_kg": 1},
    ],
)
def test_invalid_numbers_are_rejected_with_400(pricing, body):
    assert pricing.post("/calculate_cost", json=body).status_code == 400


def test_unknown_urgency_is_rejected_with_400(pricing):
    response = pricing.post(
        "/calculate_cost",
        json={"distance_km": 1, "rate_per_km": 1, "weight_kg": 1, "rate_per_kg": 1, "urgency": "express"},
    )

    assert response.status_code == 400
    assert response.json()["detail"][0]["field"] == "urgency"
