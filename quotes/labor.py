"""
labor.py — Labor Totals Calculator

Customer price, company cost, profit and GPM for detailed labor categories
(design, programming, prewire, install) and for the simple day × rate labor
block, plus the subcontractor margin helpers used when assigning
subcontractors to a category.

Rules:
- Technicians bill the category's hourly client rate for every assigned
  technician over the category's estimated days (one shared day estimate)
- Technicians cost their hourly rate × 8 hours per day
- Subcontractors bill and cost per day, each with their own day count
- Unknown resource ids cost $0
- GPM is 0 whenever the customer price is 0
"""

import logging
import math
from dataclasses import replace
from typing import Iterable, Optional, Union

from quotes.models import (
    WORK_DAY_HOURS,
    AssignedResource,
    AssignedSubcontractor,
    InvalidMarginError,
    LaborCategory,
    LaborCategoryTotals,
    LaborResource,
    QuoteOption,
    ResourceKind,
    Subcontractor,
)
from quotes.resources import ResourceRegistry, as_registry

logger = logging.getLogger(__name__)

Resources = Union[ResourceRegistry, Iterable[LaborResource]]


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_SUBCONTRACTOR_MARGIN = 25.0   # % margin on a newly assigned subcontractor
DEFAULT_SIMPLE_LABOR_RATE = 100.0     # $/hr per technician

# Phase defaults for a new option: (id, name, client $/hr, tech days, technicians)
DEFAULT_LABOR_CATEGORIES = [
    ("design",      "System Design & Engineering", 150.0, 0.5, ["tech-todd"]),
    ("programming", "Programming",                 150.0, 0.0, ["tech-todd"]),
    ("prewire",     "Pre-wire",                    100.0, 0.0, []),
    ("install",     "Installation",                100.0, 1.0, ["tech-austin", "tech-john", "tech-joe"]),
]


def _gpm(profit: float, customer_cost: float) -> float:
    return (profit / customer_cost) * 100 if customer_cost > 0 else 0.0


def _technician_company_cost(
    assigned: list[AssignedResource], days: float, registry: ResourceRegistry
) -> float:
    return sum(
        registry.daily_cost(a.resource_id, ResourceKind.TECHNICIAN) * days
        for a in assigned
    )


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------

def calculate_labor_category_totals(
    category: LaborCategory, resources: Resources
) -> LaborCategoryTotals:
    """Totals for one detailed labor category."""
    registry = as_registry(resources)
    days = category.estimated_tech_days or 0
    client_rate = category.client_rate or 0
    technicians = category.assigned_technicians or []
    subcontractors = category.assigned_subcontractors or []

    tech_customer = days * WORK_DAY_HOURS * client_rate * len(technicians)
    tech_company = _technician_company_cost(technicians, days, registry)

    sub_customer = sum(
        (s.client_daily_rate or 0) * (s.estimated_days or 0) for s in subcontractors
    )
    sub_company = sum(
        registry.daily_cost(s.resource_id, ResourceKind.SUBCONTRACTOR) * (s.estimated_days or 0)
        for s in subcontractors
    )

    customer_cost = tech_customer + sub_customer
    company_cost = tech_company + sub_company
    profit = customer_cost - company_cost

    logger.debug(
        "Labor %s: customer=%.2f company=%.2f (%d techs, %d subs)",
        category.id, customer_cost, company_cost, len(technicians), len(subcontractors),
    )
    return LaborCategoryTotals(
        customer_cost=customer_cost,
        company_cost=company_cost,
        profit=profit,
        gpm=_gpm(profit, customer_cost),
    )


def calculate_simple_labor_totals(
    option: QuoteOption, resources: Resources
) -> LaborCategoryTotals:
    """Totals for the option's simple labor block (zeros when it has none)."""
    simple = option.simple_labor
    if simple is None:
        return LaborCategoryTotals()

    registry = as_registry(resources)
    technicians = simple.assigned_technicians or []
    customer_cost = len(technicians) * simple.num_days * WORK_DAY_HOURS * simple.rate
    company_cost = _technician_company_cost(technicians, simple.num_days, registry)
    profit = customer_cost - company_cost

    return LaborCategoryTotals(
        customer_cost=customer_cost,
        company_cost=company_cost,
        profit=profit,
        gpm=_gpm(profit, customer_cost),
    )


def labor_cost_and_sell_price(option: QuoteOption, resources: Resources) -> tuple[float, float]:
    """
    Labor company cost and customer price for an option.

    Simple mode uses the simple labor block. Detailed mode sums every
    category; a labor sell price override on the option replaces the summed
    customer price but not the cost.

    Returns:
        (labor_cost, labor_sell_price)
    """
    registry = as_registry(resources)

    if option.use_simple_labor:
        totals = calculate_simple_labor_totals(option, registry)
        return totals.company_cost, totals.customer_cost

    labor_cost = 0.0
    labor_sell_price = 0.0
    for category in option.labor_categories or []:
        totals = calculate_labor_category_totals(category, registry)
        labor_cost += totals.company_cost
        labor_sell_price += totals.customer_cost

    if option.labor_sell_price_override is not None:
        labor_sell_price = option.labor_sell_price_override
    return labor_cost, labor_sell_price


# ---------------------------------------------------------------------------
# Subcontractor margins
# ---------------------------------------------------------------------------

def _check_margin(margin: float) -> None:
    if margin is None or not (0 <= margin < 100):
        raise InvalidMarginError(f"Margin must be at least 0% and below 100%, got {margin!r}")


def default_client_daily_rate(cost_rate: float, margin: float = DEFAULT_SUBCONTRACTOR_MARGIN) -> int:
    """Client daily rate that yields ``margin`` % over the daily cost, rounded up to the dollar."""
    _check_margin(margin)
    if cost_rate <= 0:
        return 0
    return math.ceil(cost_rate / (1 - margin / 100))


def assign_subcontractor(
    category: LaborCategory, subcontractor: Subcontractor, estimated_days: float = 1
) -> LaborCategory:
    """Add a subcontractor to a category at the default 25% margin."""
    if any(s.resource_id == subcontractor.id for s in category.assigned_subcontractors):
        return category
    assignment = AssignedSubcontractor(
        resource_id=subcontractor.id,
        estimated_days=estimated_days,
        client_daily_rate=default_client_daily_rate(subcontractor.cost_rate),
    )
    return replace(
        category, assigned_subcontractors=[*category.assigned_subcontractors, assignment]
    )


def set_subcontractor_margin(
    category: LaborCategory, resource_id: str, margin: float, resources: Resources
) -> LaborCategory:
    """Reprice one subcontractor assignment so it earns ``margin`` %."""
    _check_margin(margin)
    registry = as_registry(resources)
    resource = registry.get(resource_id, ResourceKind.SUBCONTRACTOR)
    cost_rate = resource.cost_rate if resource is not None else 0

    updated = []
    for assignment in category.assigned_subcontractors:
        if assignment.resource_id == resource_id:
            assignment = replace(
                assignment, client_daily_rate=default_client_daily_rate(cost_rate, margin)
            )
        updated.append(assignment)
    return replace(category, assigned_subcontractors=updated)


def subcontractor_margin(assignment: AssignedSubcontractor, resources: Resources) -> float:
    """Effective margin % of a subcontractor assignment."""
    resource = as_registry(resources).get(assignment.resource_id, ResourceKind.SUBCONTRACTOR)
    cost_rate = resource.cost_rate if resource is not None else 0
    rate = assignment.client_daily_rate or 0
    return _gpm(rate - cost_rate, rate)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

def default_labor_categories(technician_ids: Optional[dict[str, list[str]]] = None) -> list[LaborCategory]:
    """Fresh labor categories for a new option.

    Args:
        technician_ids: Optional per-category replacement of the default crew
    """
    categories = []
    for cat_id, name, rate, days, techs in DEFAULT_LABOR_CATEGORIES:
        crew = (technician_ids or {}).get(cat_id, techs)
        categories.append(LaborCategory(
            id=cat_id,
            name=name,
            client_rate=rate,
            estimated_tech_days=days,
            assigned_technicians=[AssignedResource(resource_id=t) for t in crew],
            assigned_subcontractors=[],
        ))
    return categories
