"""
test_labor.py — Labor category, simple labor and subcontractor margin tests
"""
import pytest

from quotes.labor import (
    assign_subcontractor,
    calculate_labor_category_totals,
    calculate_simple_labor_totals,
    default_client_daily_rate,
    default_labor_categories,
    labor_cost_and_sell_price,
    set_subcontractor_margin,
    subcontractor_margin,
)
from quotes.models import (
    AssignedResource,
    InvalidMarginError,
    LaborCategory,
    LaborCategoryTotals,
    SimpleLabor,
    Subcontractor,
)


# ═══════════════════════════════════════════════════════════════════════════════
# DETAILED CATEGORIES
# ═══════════════════════════════════════════════════════════════════════════════

class TestLaborCategoryTotals:

    def test_technicians_and_subcontractor(self, install_category, registry):
        totals = calculate_labor_category_totals(install_category, registry)
        # techs: 2 days * 8h * $100 * 2 techs = 3200; subs: 3 * 400 = 1200
        assert totals.customer_cost == pytest.approx(4400)
        # techs: (50 + 40) * 8 * 2 = 1440; subs: 300 * 3 = 900
        assert totals.company_cost == pytest.approx(2340)
        assert totals.profit == pytest.approx(2060)
        assert totals.gpm == pytest.approx(2060 / 4400 * 100)

    def test_accepts_plain_resource_list(self, install_category, registry):
        from_list = calculate_labor_category_totals(install_category, list(registry))
        assert from_list == calculate_labor_category_totals(install_category, registry)

    def test_unknown_technician_costs_nothing_but_still_bills(self, registry):
        category = LaborCategory(
            id="install", name="Installation", client_rate=100, estimated_tech_days=1,
            assigned_technicians=[AssignedResource("tech-a"), AssignedResource("ghost")],
        )
        totals = calculate_labor_category_totals(category, registry)
        assert totals.customer_cost == pytest.approx(1600)
        assert totals.company_cost == pytest.approx(400)

    def test_subcontractor_id_is_not_a_technician(self, registry):
        category = LaborCategory(
            id="install", name="Installation", client_rate=100, estimated_tech_days=1,
            assigned_technicians=[AssignedResource("sub-1")],
        )
        assert calculate_labor_category_totals(category, registry).company_cost == 0

    def test_zero_customer_cost_has_zero_gpm(self, registry):
        category = LaborCategory(
            id="prewire", name="Pre-wire", client_rate=0, estimated_tech_days=3,
            assigned_technicians=[AssignedResource("tech-a")],
        )
        totals = calculate_labor_category_totals(category, registry)
        assert totals.customer_cost == 0
        assert totals.company_cost == pytest.approx(1200)
        assert totals.gpm == 0

    def test_empty_category(self, registry):
        category = LaborCategory(id="design", name="Design")
        assert calculate_labor_category_totals(category, registry) == LaborCategoryTotals()


# ═══════════════════════════════════════════════════════════════════════════════
# SIMPLE LABOR
# ═══════════════════════════════════════════════════════════════════════════════

class TestSimpleLabor:

    def test_no_block_is_zero(self, make_option, registry):
        assert calculate_simple_labor_totals(make_option(), registry) == LaborCategoryTotals()

    def test_day_rate(self, make_option, registry):
        option = make_option(simple_labor=SimpleLabor(
            num_days=2, rate=100, assigned_technicians=[AssignedResource("tech-a")]
        ))
        totals = calculate_simple_labor_totals(option, registry)
        assert totals.customer_cost == pytest.approx(1600)
        assert totals.company_cost == pytest.approx(800)
        assert totals.gpm == pytest.approx(50)

    def test_no_technicians_zero_gpm(self, make_option, registry):
        option = make_option(simple_labor=SimpleLabor(num_days=2, rate=100))
        assert calculate_simple_labor_totals(option, registry).gpm == 0


class TestLaborModeSelection:

    def test_detailed_mode_sums_categories(self, make_option, install_category, registry):
        option = make_option(labor=[install_category, *default_labor_categories()[:1]])
        cost, sell = labor_cost_and_sell_price(option, registry)
        # design: 0.5 days * 8 * 150 * 1 tech (tech-todd unknown here -> $0 cost)
        assert sell == pytest.approx(4400 + 600)
        assert cost == pytest.approx(2340)

    def test_sell_price_override_replaces_price_not_cost(self, make_option, install_category, registry):
        option = make_option(labor=[install_category], labor_sell_price_override=5000.0)
        cost, sell = labor_cost_and_sell_price(option, registry)
        assert sell == 5000.0
        assert cost == pytest.approx(2340)

    def test_zero_override_is_honoured(self, make_option, install_category, registry):
        option = make_option(labor=[install_category], labor_sell_price_override=0.0)
        assert labor_cost_and_sell_price(option, registry)[1] == 0.0

    def test_simple_mode_ignores_categories_and_override(self, make_option, install_category, registry):
        option = make_option(
            labor=[install_category],
            labor_sell_price_override=9999.0,
            use_simple_labor=True,
            simple_labor=SimpleLabor(num_days=1, rate=100, assigned_technicians=[AssignedResource("tech-b")]),
        )
        assert labor_cost_and_sell_price(option, registry) == (pytest.approx(320), pytest.approx(800))


# ═══════════════════════════════════════════════════════════════════════════════
# SUBCONTRACTOR MARGINS
# ═══════════════════════════════════════════════════════════════════════════════

class TestSubcontractorMargin:

    def test_default_rate_is_25_percent_rounded_up(self):
        assert default_client_daily_rate(300) == 400
        assert default_client_daily_rate(301) == 402   # 401.33 -> 402

    def test_zero_cost_rate(self):
        assert default_client_daily_rate(0, 40) == 0

    @pytest.mark.parametrize("margin", [100, 150, -1])
    def test_rejects_out_of_range_margin(self, margin):
        with pytest.raises(InvalidMarginError):
            default_client_daily_rate(300, margin)

    def test_assign_uses_default_margin(self, install_category):
        sub = Subcontractor(id="sub-2", name="Low Volt Co", cost_rate=450.0)
        category = assign_subcontractor(install_category, sub, estimated_days=2)
        added = category.assigned_subcontractors[-1]
        assert added.resource_id == "sub-2"
        assert added.client_daily_rate == 600
        assert added.estimated_days == 2
        assert len(install_category.assigned_subcontractors) == 1

    def test_assign_twice_is_noop(self, install_category):
        sub = Subcontractor(id="sub-1", name="Wire Pros", cost_rate=300.0)
        assert assign_subcontractor(install_category, sub) is install_category

    def test_set_margin_reprices_assignment(self, install_category, registry):
        category = set_subcontractor_margin(install_category, "sub-1", 40, registry)
        assert category.assigned_subcontractors[0].client_daily_rate == 500
        assert install_category.assigned_subcontractors[0].client_daily_rate == 400

    def test_set_margin_rejects_100(self, install_category, registry):
        with pytest.raises(InvalidMarginError):
            set_subcontractor_margin(install_category, "sub-1", 100, registry)

    def test_effective_margin(self, install_category, registry):
        assignment = install_category.assigned_subcontractors[0]
        assert subcontractor_margin(assignment, registry) == pytest.approx(25)


class TestDefaultCategories:

    def test_four_phases(self):
        categories = default_labor_categories()
        assert [c.id for c in categories] == ["design", "programming", "prewire", "install"]
        install = categories[-1]
        assert install.client_rate == 100
        assert install.estimated_tech_days == 1
        assert [a.resource_id for a in install.assigned_technicians] == ["tech-austin", "tech-john", "tech-joe"]

    def test_fresh_lists_each_call(self):
        first, second = default_labor_categories(), default_labor_categories()
        assert first[0].assigned_technicians is not second[0].assigned_technicians

    def test_crew_override(self):
        categories = default_labor_categories({"install": ["tech-a"]})
        assert [a.resource_id for a in categories[-1].assigned_technicians] == ["tech-a"]
