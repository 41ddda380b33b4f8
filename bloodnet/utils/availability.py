from decimal import Decimal
from typing import Optional, Tuple

from bloodnet.schemas.base_schema import AvailabilityStatus
from bloodnet.utils.exceptions import InvalidQuantityError, ValidationError

CRITICAL_MAX = 3
LIMITED_MAX = 10

# Emergency ranking; UNAVAILABLE never reaches the ranked output
STATUS_RANK = {
    AvailabilityStatus.AVAILABLE: 0,
    AvailabilityStatus.LIMITED: 1,
    AvailabilityStatus.CRITICAL: 2,
}


def validate_quantity(quantity) -> int:
    """Return ``quantity`` if it is a non-negative int, else raise"""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidQuantityError(quantity)
    return quantity


def classify(quantity: int) -> AvailabilityStatus:
    """
    Map an on-hand quantity to its availability tier.

    0 -> UNAVAILABLE, 1-3 -> CRITICAL, 4-10 -> LIMITED, >10 -> AVAILABLE.
    This is the only place a status is ever derived.
    """
    quantity = validate_quantity(quantity)
    if quantity == 0:
        return AvailabilityStatus.UNAVAILABLE
    if quantity <= CRITICAL_MAX:
        return AvailabilityStatus.CRITICAL
    if quantity <= LIMITED_MAX:
        return AvailabilityStatus.LIMITED
    return AvailabilityStatus.AVAILABLE


def reconcile_pricing(
    cost_per_unit: Optional[Decimal], is_free: Optional[bool]
) -> Tuple[Optional[Decimal], Optional[bool]]:
    """
    Apply the pricing policy to a write.

    ``None`` means "not supplied, keep the stored value". A free record always
    costs 0; supplying a positive price on its own clears the free flag.
    """
    if cost_per_unit is not None and cost_per_unit < 0:
        raise ValidationError("cost_per_unit cannot be negative", field="cost_per_unit")

    if is_free:
        if cost_per_unit is not None and cost_per_unit > 0:
            raise ValidationError(
                "A free blood unit cannot carry a positive cost_per_unit",
                field="cost_per_unit",
            )
        return Decimal("0"), True

    if is_free is None and cost_per_unit is not None and cost_per_unit > 0:
        return cost_per_unit, False

    return cost_per_unit, is_free
