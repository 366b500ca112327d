"""
Domain service: adoption plan catalog.
"""
from typing import Optional, Tuple

from treeadopt.domain.models import AdoptionPlan, PlanDuration


# CO2 absorbed by one adopted tree per year, in kg
IMPACT_KG_PER_YEAR = 52

ADOPTION_PLANS: Tuple[AdoptionPlan, ...] = (
    AdoptionPlan(duration=PlanDuration.ONE_YEAR, price=199, label="1 Year"),
    AdoptionPlan(duration=PlanDuration.TWO_YEARS, price=379, label="2 Years", discount_label="5%"),
    AdoptionPlan(duration=PlanDuration.FIVE_YEARS, price=899, label="5 Years", discount_label="10%"),
)

DEFAULT_PLAN = ADOPTION_PLANS[0]


def select_plan(duration: Optional[int] = None) -> AdoptionPlan:
    """
    Return the plan for ``duration`` years, or the 1-year plan if none is given.

    Raises:
        LookupError: If no plan has that duration
    """
    if duration is None:
        return DEFAULT_PLAN
    for plan in ADOPTION_PLANS:
        if plan.duration == duration:
            return plan
    raise LookupError(f"No adoption plan for {duration} years")


def impact_kg(duration: int) -> int:
    """Total CO2 impact credited for an adoption of ``duration`` years."""
    return IMPACT_KG_PER_YEAR * int(duration)
