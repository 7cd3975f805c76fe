from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging

from . import schemas # Use relative import within the package
from .errors import InvalidInput

logger = logging.getLogger(__name__)

# --- Pricing rules ---
URGENT_SURCHARGE_RATE = Decimal("0.20")
DISCOUNT_THRESHOLD = Decimal("500")
DISCOUNT_RATE = Decimal("0.10")
HEAVY_CARGO_THRESHOLD_KG = Decimal("50")
HEAVY_CARGO_FEE = Decimal("15.00")

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _positive_decimal(field: str, value) -> Decimal:
    """Coerce a numeric input to Decimal, rejecting anything not strictly positive."""
    if value is None:
        raise InvalidInput(field, "is required")
    if isinstance(value, bool):
        raise InvalidInput(field, "must be a number")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(field, f"must be a number, got {value!r}")
    if not number.is_finite():
        raise InvalidInput(field, "must be finite")
    if number <= 0:
        raise InvalidInput(field, f"must be greater than zero, got {value}")
    return number


def normalize_urgency(urgency) -> schemas.Urgency:
    if isinstance(urgency, schemas.Urgency):
        return urgency
    if not isinstance(urgency, str):
        raise InvalidInput("urgency", "is required")
    try:
        return schemas.Urgency(urgency.strip().lower())
    except ValueError:
        raise InvalidInput("urgency", f"must be 'normal' or 'urgent', got {urgency!r}")


def compute_cost(distance_km, rate_per_km, weight_kg, rate_per_kg, urgency) -> schemas.CostBreakdown:
    """
    Prices a shipment from distance, weight and urgency.

    Every input is validated before anything is computed. The adjustments run in a
    fixed order: urgency surcharge on the base cost, then the high-value discount on
    base + surcharge, then the flat heavy-cargo fee, which is never discounted.
    """
    distance_km = _positive_decimal("distance_km", distance_km)
    rate_per_km = _positive_decimal("rate_per_km", rate_per_km)
    weight_kg = _positive_decimal("weight_kg", weight_kg)
    rate_per_kg = _positive_decimal("rate_per_kg", rate_per_kg)
    urgency = normalize_urgency(urgency)

    # 1. Distance and weight components
    distance_cost = _money(distance_km * rate_per_km)
    weight_cost = _money(weight_kg * rate_per_kg)
    base_cost = distance_cost + weight_cost
    logger.debug(f"Base cost {base_cost:.2f} (distance {distance_cost:.2f} + weight {weight_cost:.2f})")

    # 2. Urgency surcharge, on the base cost only
    surcharge = ZERO
    if urgency is schemas.Urgency.URGENT:
        surcharge = _money(base_cost * URGENT_SURCHARGE_RATE)
        logger.debug(f"Applying {URGENT_SURCHARGE_RATE * 100}% urgency surcharge = {surcharge:.2f}")
    running_total = base_cost + surcharge

    # 3. High-value discount, evaluated before the extra fee
    discount = ZERO
    if running_total > DISCOUNT_THRESHOLD:
        discount = _money(running_total * DISCOUNT_RATE)
        logger.debug(f"Applying {DISCOUNT_RATE * 100}% discount = {discount:.2f}")
    running_total -= discount

    # 4. Flat heavy-cargo fee
    extra_fee = ZERO
    if weight_kg > HEAVY_CARGO_THRESHOLD_KG:
        extra_fee = HEAVY_CARGO_FEE
        logger.debug(f"Applying heavy cargo fee = {extra_fee:.2f}")
    running_total += extra_fee

    logger.info(
        f"Cost calculated - Base: {base_cost:.2f}, Surcharge: {surcharge:.2f}, "
        f"Discount: {discount:.2f}, Extra fee: {extra_fee:.2f}, Final: {running_total:.2f}"
    )

    return schemas.CostBreakdown(
        distance_cost=distance_cost,
        weight_cost=weight_cost,
        base_cost=base_cost,
        surcharge=surcharge,
        discount=discount,
        extra_fee=extra_fee,
        final_cost=running_total,
    )


def compute_cost_for(request: schemas.ShipmentRequest) -> schemas.CostBreakdown:
    return compute_cost(
        request.distance_km,
        request.rate_per_km,
        request.weight_kg,
        request.rate_per_kg,
        request.urgency,
    )
