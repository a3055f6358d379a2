"""
revision_diff.py — Customer-facing revision summary

Compares two snapshots of a quote's options and lists what changed, one
line per change, for the change log sent with a revised quote.

Options, areas, items and labor categories are matched by id. Only
additions, removals, item quantities, labor days and the scope of work are
compared; renames and price edits are not reported.

Usage:
    from quotes.revision_diff import generate_diff_summary
    text = generate_diff_summary(quote.original_options_for_diff, quote.options, quote.revision_number)
"""

import logging
from typing import Optional

from quotes.models import QuoteOption

logger = logging.getLogger(__name__)


def _fmt(value) -> str:
    """Render a quantity or day count the way it was typed (2.0 -> 2)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _option_changes(original: QuoteOption, current: QuoteOption) -> list[str]:
    changes: list[str] = []
    original_areas = {a.id: a for a in original.areas}
    current_area_ids = {a.id for a in current.areas}

    for area in current.areas:
        if area.id not in original_areas:
            changes.append(f'- Added area: "{area.name}"')
    for area in original.areas:
        if area.id not in current_area_ids:
            changes.append(f'- Removed area: "{area.name}"')

    for area in current.areas:
        original_area = original_areas.get(area.id)
        if original_area is None:
            continue
        original_items = {i.id: i for i in original_area.items}
        current_item_ids = {i.id for i in area.items}

        for item in area.items:
            before = original_items.get(item.id)
            if before is None:
                changes.append(f'- In "{area.name}": Added {_fmt(item.quantity)}x {item.name}')
            elif before.quantity != item.quantity:
                changes.append(
                    f'- In "{area.name}": Changed quantity of {item.name} '
                    f"from {_fmt(before.quantity)} to {_fmt(item.quantity)}"
                )
        for item in original_area.items:
            if item.id not in current_item_ids:
                changes.append(f'- In "{area.name}": Removed {item.name}')

    original_labor = {c.id: c for c in original.labor_categories}
    for category in current.labor_categories:
        before = original_labor.get(category.id)
        if before is not None and before.estimated_tech_days != category.estimated_tech_days:
            changes.append(
                f'- Changed labor for "{category.name}" from '
                f"{_fmt(before.estimated_tech_days)} to {_fmt(category.estimated_tech_days)} days"
            )

    if original.scope_of_work != current.scope_of_work:
        changes.append("- Updated the Scope of Work.")
    return changes


def generate_diff_summary(
    original_options: list[QuoteOption],
    current_options: list[QuoteOption],
    revision_number: Optional[int] = None,
) -> str:
    """
    Summarize changes between two option snapshots.

    Args:
        original_options: Options as last sent to the customer
        current_options: Options as edited since
        revision_number: Revision being sent; picks the header wording

    Returns:
        Header plus one "- ..." line per change, or '' when nothing changed
    """
    changes: list[str] = []
    original_by_id = {o.id: o for o in original_options}
    current_ids = {o.id for o in current_options}

    for option in current_options:
        if option.id not in original_by_id:
            changes.append(f'- Added new option: "{option.name}"')
    for option in original_options:
        if option.id not in current_ids:
            changes.append(f'- Removed option: "{option.name}"')

    for option in current_options:
        original = original_by_id.get(option.id)
        if original is not None:
            changes.extend(_option_changes(original, option))

    if not changes:
        return ""

    logger.debug("Revision diff: %d change(s)", len(changes))
    header = f"Summary for Revision {revision_number}:" if revision_number else "Summary of changes:"
    return header + "\n\n" + "\n".join(changes)
