"""
Unit tests for the delivery cost calculation.
"""
from decimal import Decimal

import pytest

from pricing_service.errors import InvalidInput
from pricing_service.logic import compute_cost, compute_cost_for, normalize_urgency
from pricing_service.schemas import ShipmentRequest, Urgency


def test_normal_light_cheap_shipment_has_no_adjustments():
    costs = compute_cost(10, 2, 5, 3, "normal")

    assert costs.distance_cost == 20
    assert costs.weight_cost == 15
    assert costs.base_cost == 35
    assert costs.surcharge == 0
    assert costs.discount == 0
    assert costs.extra_fee == 0
    assert costs.final_cost == 35


def test_urgent_adds_twenty_percent_of_base():
    costs = compute_cost(10, 2, 5, 3, "urgent")

    assert costs.surcharge == 7
    assert costs.final_cost == 42


def test_discount_is_taken_after_surcharge_and_before_extra_fee():
    costs = compute_cost(200, 3, 10, 5, "urgent")

    assert costs.distance_cost == 600
    assert costs.weight_cost == 50
    assert costs.base_cost == 650
    assert costs.surcharge == 130
    assert costs.discount == 78
    assert costs.extra_fee == 0
    assert costs.final_cost == 702


def test_heavy_cargo_fee_is_flat():
    costs = compute_cost(10, 1, 60, 1, "normal")

    assert costs.base_cost == 70
    assert costs.surcharge == 0
    assert costs.discount == 0
    assert costs.extra_fee == 15
    assert costs.final_cost == 85


def test_heavy_cargo_fee_is_never_discounted():
    # base 600 > 500 so the discount applies, the fee is added afterwards in full
    costs = compute_cost(540, 1, 60, 1, "normal")

    assert costs.base_cost == 600
    assert costs.discount == 60
    assert costs.extra_fee == 15
    assert costs.final_cost == 555


def test_surcharge_can_push_total_over_discount_threshold():
    # base 450 alone is below the threshold, 450 + 90 is above it
    costs = compute_cost(400, 1, 10, 5, "urgent")

    assert costs.base_cost == 450
    assert costs.surcharge == 90
    assert costs.discount == Decimal("54.00")
    assert costs.final_cost == Decimal("486.00")


def test_discount_threshold_is_strictly_greater_than_500():
    over = compute_cost(250, 2, 1, "0.01", "normal")
    assert over.base_cost == Decimal("500.01")
    assert over.discount == Decimal("50.00")

    at_threshold = compute_cost(249, 2, 2, 1, "normal")
    assert at_threshold.base_cost == 500
    assert at_threshold.discount == 0


def test_weight_of_exactly_50_kg_is_not_heavy():
    assert compute_cost(1, 1, 50, 1, "normal").extra_fee == 0
    assert compute_cost(1, 1, Decimal("50.01"), 1, "normal").extra_fee == 15


def test_final_cost_is_sum_of_line_items():
    costs = compute_cost(Decimal("123.45"), Decimal("3.33"), Decimal("77.7"), Decimal("2.19"), "urgent")

    assert costs.final_cost == (
        costs.distance_cost + costs.weight_cost + costs.surcharge - costs.discount + costs.extra_fee
    )
    assert costs.final_cost >= 0


def test_line_items_are_rounded_to_cents():
    costs = compute_cost("0.333", "1", "1", "0.333", "normal")

    assert costs.distance_cost == Decimal("0.33")
    assert costs.weight_cost == Decimal("0.33")
    assert costs.final_cost == Decimal("0.66")


def test_identical_inputs_give_identical_output():
    first = compute_cost(200, 3, 60, 5, "urgent")
    second = compute_cost(200, 3, 60, 5, "urgent")

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.parametrize("value", ["URGENT", " Urgent ", Urgency.URGENT])
def test_urgency_is_case_insensitive(value):
    assert normalize_urgency(value) is Urgency.URGENT
    assert compute_cost(10, 2, 5, 3, value).surcharge == 7


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"distance_km": 0}, "distance_km"),
        ({"distance_km": -5}, "distance_km"),
        ({"weight_kg": -1}, "weight_kg"),
        ({"rate_per_km": "abc"}, "rate_per_km"),
        ({"rate_per_kg": None}, "rate_per_kg"),
        ({"rate_per_kg": True}, "rate_per_kg"),
        ({"weight_kg": float("nan")}, "weight_kg"),
        ({"distance_km": float("inf")}, "distance_km"),
        ({"urgency": "express"}, "urgency"),
        ({"urgency": None}, "urgency"),
    ],
)
def test_invalid_input_is_rejected(kwargs, field):
    args = {"distance_km": 10, "rate_per_km": 2, "weight_kg": 5, "rate_per_kg": 3, "urgency": "normal"}
    args.update(kwargs)

    with pytest.raises(InvalidInput) as excinfo:
        compute_cost(**args)

    assert excinfo.value.field == field
    assert isinstance(excinfo.value, ValueError)


def test_compute_cost_for_request_model():
    request = ShipmentRequest(distance_km=10, rate_per_km=1, weight_kg=60, rate_per_kg=1)

    assert compute_cost_for(request).final_cost == 85
