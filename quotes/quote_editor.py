"""
quote_editor.py — Quote editing operations

Edits the sales team makes while building a quote: options, areas, items,
sell prices, area-wide markup and pricing model. Every function returns a
new object and leaves its input untouched.

Quote-level edits are refused once the quote has left draft /
pending-changes.
"""

import copy
import logging
import uuid
from dataclasses import fields, replace
from typing import Callable, Optional

from quotes.labor import DEFAULT_SIMPLE_LABOR_RATE, default_labor_categories
from quotes.models import (
    AreaNotFoundError,
    LastAreaError,
    LastOptionError,
    PricingModel,
    Product,
    Quote,
    QuoteArea,
    QuoteError,
    QuoteItem,
    QuoteNotEditableError,
    QuoteOption,
    QuoteStatus,
    SimpleLabor,
)
from quotes.pricing_calculator import apply_area_markup

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = {QuoteStatus.DRAFT, QuoteStatus.PENDING_CHANGES}


def _new_id() -> str:
    return str(uuid.uuid4())


def ensure_editable(quote: Quote) -> None:
    if quote.status not in EDITABLE_STATUSES:
        raise QuoteNotEditableError(
            f"Quote {quote.quote_number or quote.id} is {quote.status.value} and cannot be edited"
        )


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

def update_option(quote: Quote, option_id: str, **changes) -> Quote:
    """Replace fields of one option."""
    ensure_editable(quote)
    quote.get_option(option_id)
    options = [replace(o, **changes) if o.id == option_id else o for o in quote.options]
    return replace(quote, options=options)


def edit_option(quote: Quote, option_id: str, edit: Callable[..., QuoteOption], *args, **kwargs) -> Quote:
    """Run an option-level edit (add_area, update_item_quantity, ...) on a quote's option.

    Example:
        quote = edit_option(quote, opt_id, update_item_quantity, area_id, item_id, 5)
    """
    ensure_editable(quote)
    edited = edit(quote.get_option(option_id), *args, **kwargs)
    return replace(quote, options=[edited if o.id == option_id else o for o in quote.options])


def new_option(
    quote: Quote,
    source_option_id: Optional[str] = None,
    id_factory: Callable[[], str] = _new_id,
) -> Quote:
    """
    Append an option, optionally copying areas and labor from another.

    A blank option gets one empty area and the default labor categories.
    """
    ensure_editable(quote)
    source = quote.get_option(source_option_id) if source_option_id else None

    if source is not None:
        areas = copy.deepcopy(source.areas)
        labor = copy.deepcopy(source.labor_categories)
    else:
        areas = [QuoteArea(id=id_factory(), name="Area 1", items=[])]
        labor = default_labor_categories()

    option = QuoteOption(
        id=id_factory(),
        name=f"Option {len(quote.options) + 1}",
        areas=areas,
        labor_categories=labor,
        scope_of_work="",
        use_simple_labor=False,
        simple_labor=SimpleLabor(num_days=1, rate=DEFAULT_SIMPLE_LABOR_RATE, assigned_technicians=[]),
    )
    logger.info("Added %r to quote %s (copied from %s)", option.name, quote.id, source_option_id)
    return replace(quote, options=[*quote.options, option])


def delete_option(quote: Quote, option_id: str) -> Quote:
    ensure_editable(quote)
    quote.get_option(option_id)
    if len(quote.options) <= 1:
        raise LastOptionError("A quote must keep at least one option")
    return replace(quote, options=[o for o in quote.options if o.id != option_id])


def set_pricing_model(quote: Quote, model: PricingModel) -> Quote:
    ensure_editable(quote)
    return replace(quote, pricing_model=PricingModel(model))


# ---------------------------------------------------------------------------
# Areas
# ---------------------------------------------------------------------------

def _get_area(option: QuoteOption, area_id: str) -> QuoteArea:
    for area in option.areas:
        if area.id == area_id:
            return area
    raise AreaNotFoundError(area_id)


def _map_area(option: QuoteOption, area_id: str, fn: Callable[[QuoteArea], QuoteArea]) -> QuoteOption:
    _get_area(option, area_id)
    return replace(option, areas=[fn(a) if a.id == area_id else a for a in option.areas])


def add_area(option: QuoteOption, id_factory: Callable[[], str] = _new_id) -> QuoteOption:
    area = QuoteArea(id=id_factory(), name=f"Area {len(option.areas) + 1}", items=[])
    return replace(option, areas=[*option.areas, area])


def delete_area(option: QuoteOption, area_id: str) -> QuoteOption:
    _get_area(option, area_id)
    if len(option.areas) <= 1:
        raise LastAreaError("Cannot delete the last area")
    return replace(option, areas=[a for a in option.areas if a.id != area_id])


def rename_area(option: QuoteOption, area_id: str, name: str) -> QuoteOption:
    return _map_area(option, area_id, lambda a: replace(a, name=name))


def apply_area_markup_to_option(option: QuoteOption, area_id: str, markup: float) -> QuoteOption:
    return _map_area(option, area_id, lambda a: apply_area_markup(a, markup))


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

def _add_quantity(area: QuoteArea, item: Product, quantity: float) -> QuoteArea:
    if any(i.id == item.id for i in area.items):
        items = [replace(i, quantity=i.quantity + quantity) if i.id == item.id else i for i in area.items]
    elif isinstance(item, QuoteItem):
        items = [*area.items, replace(item, quantity=quantity)]
    else:
        product_fields = {f.name: getattr(item, f.name) for f in fields(Product)}
        items = [*area.items, QuoteItem(**product_fields, quantity=quantity)]
    return replace(area, items=items)


def add_product_to_area(option: QuoteOption, area_id: str, product: Product) -> QuoteOption:
    """Add one of ``product``; bumps the quantity if the area already has it."""
    return _map_area(option, area_id, lambda a: _add_quantity(a, product, 1))


def duplicate_item_to_area(
    option: QuoteOption, item: QuoteItem, destination_area_id: str, quantity: float
) -> QuoteOption:
    """Copy an item into another area, merging with an existing line."""
    if quantity <= 0:
        raise QuoteError(f"Quantity to duplicate must be positive, got {quantity!r}")
    return _map_area(option, destination_area_id, lambda a: _add_quantity(a, item, quantity))


def update_item_quantity(option: QuoteOption, area_id: str, item_id: str, quantity: float) -> QuoteOption:
    quantity = max(0, quantity)
    return _map_area(option, area_id, lambda a: replace(a, items=[
        replace(i, quantity=quantity) if i.id == item_id else i for i in a.items
    ]))


def set_item_sell_price(option: QuoteOption, item_id: str, sell_price: Optional[float]) -> QuoteOption:
    """Override an item's sell price in every area; None restores MSRP."""
    return replace(option, areas=[
        replace(area, items=[
            replace(i, sell_price_override=sell_price) if i.id == item_id else i
            for i in area.items
        ])
        for area in option.areas
    ])


def delete_item(option: QuoteOption, area_id: str, item_id: str) -> QuoteOption:
    return _map_area(option, area_id, lambda a: replace(a, items=[i for i in a.items if i.id != item_id]))

