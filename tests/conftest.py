"""
Shared pytest fixtures for the quote engine test suite.

Roster used throughout:
    tech-a   technician   $50/hr
    tech-b   technician   $40/hr
    sub-1    subcontractor $300/day
"""
import pytest

from quotes.models import (
    AssignedResource,
    AssignedSubcontractor,
    LaborCategory,
    Quote,
    QuoteArea,
    QuoteItem,
    QuoteOption,
    Subcontractor,
    Technician,
)
from quotes.resources import ResourceRegistry


@pytest.fixture
def registry():
    return ResourceRegistry([
        Technician(id="tech-a", name="Alex", cost_rate=50.0),
        Technician(id="tech-b", name="Blair", cost_rate=40.0),
        Subcontractor(id="sub-1", name="Wire Pros", cost_rate=300.0),
    ])


@pytest.fixture
def make_item():
    def _make(item_id="item-1", name="Sonos Amp", dealer_cost=100.0, msrp=150.0, quantity=2, **kwargs):
        return QuoteItem(id=item_id, name=name, dealer_cost=dealer_cost, msrp=msrp, quantity=quantity, **kwargs)
    return _make


@pytest.fixture
def make_option(make_item):
    def _make(items=None, labor=None, option_id="opt-1", name="Option 1", **kwargs):
        area = QuoteArea(id="area-1", name="Main Room", items=items if items is not None else [make_item()])
        return QuoteOption(id=option_id, name=name, areas=[area], labor_categories=labor or [], **kwargs)
    return _make


@pytest.fixture
def make_quote():
    def _make(options, **kwargs):
        return Quote(id="q-1", quote_number="Q-1001", options=options, **kwargs)
    return _make


@pytest.fixture
def install_category():
    """2 days, $100/hr, two technicians plus one subcontractor for 3 days at $400/day."""
    return LaborCategory(
        id="install",
        name="Installation",
        client_rate=100.0,
        estimated_tech_days=2,
        assigned_technicians=[AssignedResource("tech-a"), AssignedResource("tech-b")],
        assigned_subcontractors=[AssignedSubcontractor("sub-1", estimated_days=3, client_daily_rate=400.0)],
    )
