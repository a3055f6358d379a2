#!/usr/bin/env python3
"""
pricing_calculator.py — Quote Pricing Engine

Calculates option totals for AV / systems-integration quotes: equipment
cost and sell price across every area, shipping, labor (detailed or simple),
discount, tax, margin and the two-invoice payment split.

Two pricing models:
- Custom: sell prices come from the items (MSRP or override) and labor
  rates; the quote discount applies; margin is whatever results
- Tiered: the company cost picks a target GPM bracket and the selling price
  is solved from it; discounts are ignored

Usage:
    from quotes.pricing_calculator import PricingCalculator
    calc = PricingCalculator(registry)
    totals = calc.calculate(option, quote)
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from quotes.labor import Resources, labor_cost_and_sell_price
from quotes.models import (
    CustomerType,
    DiscountType,
    InvalidMarkupError,
    PricingModel,
    Quote,
    QuoteArea,
    QuoteOption,
    QuoteTotals,
)
from quotes.resources import as_registry, load_registry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Tiered GPM brackets on total company cost (inclusive upper bounds)
TIERED_MARGIN_BRACKETS: list[tuple[float, float]] = [
    (5_000,        45.0),
    (15_000,       40.0),
    (25_000,       35.0),
    (float("inf"), 30.0),
]
SCHOOL_TARGET_MARGIN = 25.0

# Tiered display allocation: equipment shown at cost × 1.25
TIERED_MATERIAL_MARKUP = 1.25

# Share of labor billed on the first (deposit) invoice
LABOR_DEPOSIT_SHARE = 0.25


# ---------------------------------------------------------------------------
# Data Models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MaterialTotals:
    material_cost: float
    material_sell_price: float
    shipping_charge: float           # customer-facing
    company_shipping_cost: float


@dataclass(frozen=True)
class InvoiceSplit:
    first_subtotal: float = 0.0
    second_subtotal: float = 0.0
    first_discount: float = 0.0
    second_discount: float = 0.0
    first_tax: float = 0.0
    second_tax: float = 0.0
    first_invoice: float = 0.0
    second_invoice: float = 0.0


@dataclass(frozen=True)
class AreaTotals:
    cost: float
    sell_price: float
    profit: float
    margin: float


# ---------------------------------------------------------------------------
# Material / Shipping
# ---------------------------------------------------------------------------

def aggregate_materials(option: QuoteOption, quote: Quote) -> MaterialTotals:
    """Equipment cost, sell price and shipping over every area of the option."""
    items = option.all_items()
    material_cost = sum((i.dealer_cost or 0) * (i.quantity or 0) for i in items)
    material_sell_price = sum((i.sell_price or 0) * (i.quantity or 0) for i in items)

    return MaterialTotals(
        material_cost=material_cost,
        material_sell_price=material_sell_price,
        shipping_charge=material_sell_price * ((quote.shipping_customer_percentage or 0) / 100),
        company_shipping_cost=material_cost * ((quote.shipping_company_percentage or 0) / 100),
    )


def apply_area_markup(area: QuoteArea, markup: float) -> QuoteArea:
    """
    Set every costed item's sell price to dealer cost plus ``markup`` %.

    Items with no dealer cost keep their current sell price.
    """
    if markup is None or markup < 0:
        raise InvalidMarkupError(f"Markup must be 0% or more, got {markup!r}")
    items = [
        replace(item, sell_price_override=item.dealer_cost * (1 + markup / 100))
        if item.dealer_cost > 0 else item
        for item in area.items
    ]
    logger.info("Applied %.1f%% markup to area %r (%d items)", markup, area.name, len(items))
    return replace(area, items=items)


def area_totals(area: QuoteArea) -> AreaTotals:
    """Cost, sell price, profit and margin for one area."""
    cost = sum((i.dealer_cost or 0) * (i.quantity or 0) for i in area.items)
    sell_price = sum((i.sell_price or 0) * (i.quantity or 0) for i in area.items)
    profit = sell_price - cost
    margin = (profit / sell_price) * 100 if sell_price > 0 else 0.0
    return AreaTotals(cost=cost, sell_price=sell_price, profit=profit, margin=margin)


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------

def allocate_invoices(
    material_sell_price: float,
    shipping_charge: float,
    labor_sell_price: float,
    discount: float,
    tax_rate: float,
) -> InvoiceSplit:
    """
    Split the price into deposit and completion invoices.

    The first invoice carries equipment, shipping and 25% of labor; the
    second carries the remaining 75% of labor. The discount is shared in
    proportion to each invoice's part of the pre-discount price, and each
    invoice is taxed on its own discounted subtotal.
    """
    customer_price = material_sell_price + labor_sell_price + shipping_charge
    if customer_price <= 0:
        return InvoiceSplit()

    first_subtotal = material_sell_price + shipping_charge + labor_sell_price * LABOR_DEPOSIT_SHARE
    second_subtotal = labor_sell_price * (1 - LABOR_DEPOSIT_SHARE)

    first_discount = discount * (first_subtotal / customer_price)
    second_discount = discount * (second_subtotal / customer_price)

    first_taxable = first_subtotal - first_discount
    second_taxable = second_subtotal - second_discount
    first_tax = first_taxable * ((tax_rate or 0) / 100)
    second_tax = second_taxable * ((tax_rate or 0) / 100)

    return InvoiceSplit(
        first_subtotal=first_subtotal,
        second_subtotal=second_subtotal,
        first_discount=first_discount,
        second_discount=second_discount,
        first_tax=first_tax,
        second_tax=second_tax,
        first_invoice=first_taxable + first_tax,
        second_invoice=second_taxable + second_tax,
    )


# ---------------------------------------------------------------------------
# Pricing models
# ---------------------------------------------------------------------------

def calculate_custom_totals(option: QuoteOption, quote: Quote, resources: Resources) -> QuoteTotals:
    """Totals from item sell prices, labor rates and the quote discount."""
    registry = as_registry(resources)
    materials = aggregate_materials(option, quote)
    labor_cost, labor_sell_price = labor_cost_and_sell_price(option, registry)

    customer_price = materials.material_sell_price + labor_sell_price + materials.shipping_charge
    discount_value = quote.discount_value or 0
    if quote.discount_type == DiscountType.PERCENTAGE:
        discount = customer_price * (discount_value / 100)
    else:
        discount = discount_value
    taxable_total = customer_price - discount

    tax = taxable_total * ((quote.tax_rate or 0) / 100)
    final_price = taxable_total + tax

    total_company_cost = materials.material_cost + labor_cost + materials.company_shipping_cost
    profit = taxable_total - total_company_cost
    margin_percentage = (profit / taxable_total) * 100 if taxable_total > 0 else 0.0

    invoices = allocate_invoices(
        materials.material_sell_price,
        materials.shipping_charge,
        labor_sell_price,
        discount,
        quote.tax_rate,
    )

    return QuoteTotals(
        material_cost=materials.material_cost,
        labor_cost=labor_cost,
        total_company_cost=total_company_cost,
        customer_price=customer_price,
        discount=discount,
        tax=tax,
        final_price=final_price,
        margin_percentage=margin_percentage,
        material_sell_price=materials.material_sell_price,
        labor_sell_price=labor_sell_price,
        shipping_charge=materials.shipping_charge,
        first_invoice=invoices.first_invoice,
        second_invoice=invoices.second_invoice,
    )


def tiered_target_margin(total_company_cost: float, customer_type: CustomerType) -> float:
    """Target GPM % for a company cost; schools always get the school rate."""
    if customer_type == CustomerType.SCHOOL:
        return SCHOOL_TARGET_MARGIN
    for upper_bound, margin in TIERED_MARGIN_BRACKETS:
        if total_company_cost <= upper_bound:
            return margin
    return TIERED_MARGIN_BRACKETS[-1][1]


def calculate_tiered_totals(option: QuoteOption, quote: Quote, resources: Resources) -> QuoteTotals:
    """
    Totals priced to the target GPM bracket of the option's company cost.

    Equipment is displayed at cost × 1.25 plus customer shipping; labor
    takes whatever remains of the selling price, which can be negative on
    equipment-heavy options. The quote discount is not applied.
    """
    registry = as_registry(resources)
    materials = aggregate_materials(option, quote)
    labor_cost, _ = labor_cost_and_sell_price(option, registry)

    material_cost = materials.material_cost
    total_company_cost = material_cost + labor_cost + materials.company_shipping_cost
    if total_company_cost <= 0:
        return QuoteTotals.zero()

    gpm = tiered_target_margin(total_company_cost, quote.customer_type_for_pricing)
    selling_price = total_company_cost / (1 - gpm / 100)

    material_sell_price = material_cost * TIERED_MATERIAL_MARKUP
    shipping_charge = material_sell_price * ((quote.shipping_customer_percentage or 0) / 100)
    labor_sell_price = selling_price - material_sell_price - shipping_charge
    if labor_sell_price < 0:
        logger.warning(
            "Tiered option %r: labor allocation is negative (%.2f); equipment markup exceeds "
            "the %.0f%% GPM selling price of %.2f",
            option.name, labor_sell_price, gpm, selling_price,
        )

    discount = 0.0
    customer_price = selling_price
    taxable_total = customer_price - discount
    tax = taxable_total * ((quote.tax_rate or 0) / 100)

    invoices = allocate_invoices(
        material_sell_price, shipping_charge, labor_sell_price, discount, quote.tax_rate
    )

    return QuoteTotals(
        material_cost=material_cost,
        labor_cost=labor_cost,
        total_company_cost=total_company_cost,
        customer_price=customer_price,
        discount=discount,
        tax=tax,
        final_price=taxable_total + tax,
        margin_percentage=gpm,
        material_sell_price=material_sell_price,
        labor_sell_price=labor_sell_price,
        shipping_charge=shipping_charge,
        first_invoice=invoices.first_invoice,
        second_invoice=invoices.second_invoice,
    )


def calculate_totals(option: QuoteOption, quote: Quote, resources: Resources) -> QuoteTotals:
    """Totals under the quote's active pricing model."""
    if quote.pricing_model == PricingModel.TIERED:
        return calculate_tiered_totals(option, quote, resources)
    return calculate_custom_totals(option, quote, resources)


# ---------------------------------------------------------------------------
# Pricing Calculator
# ---------------------------------------------------------------------------

class PricingCalculator:
    """
    Quote pricing engine bound to a resource registry.

    Rules:
    - Sell price of an item is its override when set, else MSRP
    - Shipping is charged on sell price and costed on dealer cost, each at
      its own percentage
    - Totals are always recomputed from the quote tree, never read back
      from a stored snapshot
    """

    def __init__(self, resources: Optional[Resources] = None):
        self.registry = as_registry(resources) if resources is not None else load_registry()
        logger.info("PricingCalculator initialized: %d resources", len(self.registry))

    def calculate(self, option: QuoteOption, quote: Quote) -> QuoteTotals:
        """Totals for one option under the quote's pricing model."""
        registry = self.registry.for_quote(quote)
        totals = calculate_totals(option, quote, registry)
        logger.info(
            "Priced %s / %r (%s): cost=$%s, price=$%s, final=$%s, margin=%.1f%%",
            quote.quote_number or quote.id,
            option.name,
            quote.pricing_model.value,
            f"{totals.total_company_cost:,.2f}",
            f"{totals.customer_price:,.2f}",
            f"{totals.final_price:,.2f}",
            totals.margin_percentage,
        )
        return totals

    def calculate_quote(self, quote: Quote) -> dict[str, QuoteTotals]:
        """Totals for every option, keyed by option id."""
        return {option.id: self.calculate(option, quote) for option in quote.options}

    def format_summary_text(self, option: QuoteOption, quote: Quote, totals: Optional[QuoteTotals] = None) -> str:
        """
        Format a human-readable totals block for one option.

        Args:
            option: Option to summarize
            quote: Owning quote (pricing model, tax rate)
            totals: Precomputed totals; calculated when omitted

        Returns:
            Formatted text block
        """
        totals = totals or self.calculate(option, quote)
        lines = []

        def fmt(val: float) -> str:
            return f"${val:>12,.2f}"

        lines.append(f"PRICING SUMMARY — {option.name} ({quote.pricing_model.value})")
        lines.append("=" * 50)
        lines.append(f"  Equipment:                   {fmt(totals.material_sell_price)}")
        lines.append(f"  Labor:                       {fmt(totals.labor_sell_price)}")
        if totals.shipping_charge:
            lines.append(f"  Shipping:                    {fmt(totals.shipping_charge)}")
        lines.append(f"  Subtotal:                    {fmt(totals.customer_price)}")
        if totals.discount:
            lines.append(f"  Discount:                    {fmt(-totals.discount)}")
        if quote.tax_rate:
            lines.append(f"  Tax ({quote.tax_rate:.2f}%):               {fmt(totals.tax)}")
        lines.append("-" * 50)
        lines.append(f"  TOTAL:                       {fmt(totals.final_price)}")
        lines.append("")
        lines.append(f"  Company Cost:                {fmt(totals.total_company_cost)}")
        lines.append(f"  Margin:                      {totals.margin_percentage:>12.2f}%")
        lines.append("")
        lines.append("Payment Schedule:")
        lines.append(f"  Deposit (equipment + 25% labor)      {fmt(totals.first_invoice)}")
        lines.append(f"  Completion (75% labor)               {fmt(totals.second_invoice)}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# CLI / Demo
# ---------------------------------------------------------------------------

def _demo() -> None:
    from quotes.config import configure_logging
    from quotes.labor import default_labor_categories
    from quotes.models import QuoteItem

    configure_logging()

    area = QuoteArea(id="area-1", name="Great Room", items=[
        QuoteItem(id="c4-core3", name="Control4 CORE 3", dealer_cost=2200.00, msrp=3300.00, quantity=1),
        QuoteItem(id="polk-70rt", name="Polk 70-RT In-Ceiling Speaker", dealer_cost=180.00, msrp=299.00, quantity=6),
        QuoteItem(id="araknis-810", name="Araknis 810 WAP", dealer_cost=350.00, msrp=525.00, quantity=2),
    ])
    option = QuoteOption(
        id="opt-1", name="Option 1", areas=[area], labor_categories=default_labor_categories()
    )
    quote = Quote(
        id="demo", quote_number="Q-1001", options=[option],
        shipping_customer_percentage=5, shipping_company_percentage=3, tax_rate=7.25,
    )

    calc = PricingCalculator()
    print(calc.format_summary_text(option, quote))
    print()
    print(calc.format_summary_text(option, replace(quote, pricing_model=PricingModel.TIERED)))


if __name__ == "__main__":
    _demo()
