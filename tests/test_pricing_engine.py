"""
Pricing engine tests: worked scenarios, invariants and edge cases.
"""
import copy

import pytest

from landed_cost.engine import calculate, ProductLine
from landed_cost.engine.pricing_engine import filter_products, weighted_margin

from conftest import make_input


def test_single_product_scenario():
    """One product with only a 15% margin: invoice is procurement plus margin."""
    calc_input = make_input(products=[
        ProductLine(name="Basmati Rice", quantity=10, unit_price=100, included=True, margin=15),
    ])

    result = calculate(calc_input)

    assert result.raw_materials_cost == pytest.approx(1000)
    assert result.total_procurement_cost == pytest.approx(1000)
    assert result.weighted_margin == pytest.approx(15)
    assert result.margin_amount == pytest.approx(150)
    assert result.invoice_value == pytest.approx(1150)
    assert result.importer_total_cost == pytest.approx(1150)
    assert result.distributor_price == pytest.approx(1150)
    assert result.retailer_price == pytest.approx(1150)
    assert result.product_breakdown[0].invoice_price == pytest.approx(115)
    assert result.total_margin_percentage == pytest.approx(15)


def test_equal_value_products_average_their_margins():
    """Two lines of equal value weight their margins equally."""
    low_first = make_input(products=[
        ProductLine(name="A", quantity=10, unit_price=100, included=True, margin=10),
        ProductLine(name="B", quantity=20, unit_price=50, included=True, margin=20),
    ])
    high_first = make_input(products=[
        ProductLine(name="A", quantity=10, unit_price=100, included=True, margin=20),
        ProductLine(name="B", quantity=20, unit_price=50, included=True, margin=10),
    ])

    assert calculate(low_first).weighted_margin == pytest.approx(15)
    assert calculate(high_first).weighted_margin == pytest.approx(15)


def test_margin_weighted_by_value_not_quantity():
    products = [
        ProductLine(name="A", quantity=1, unit_price=3000, included=True, margin=30),
        ProductLine(name="B", quantity=100, unit_price=10, included=True, margin=10),
    ]
    # 3000 at 30% and 1000 at 10%
    assert weighted_margin(products) == pytest.approx(25)


@pytest.mark.parametrize("products", [
    [],
    [ProductLine(name="A", quantity=10, unit_price=100, included=False, margin=15)],
    [
        ProductLine(name="A", quantity=0, unit_price=100, included=True, margin=15),
        ProductLine(name="B", quantity=5, unit_price=80, included=False, margin=15),
    ],
], ids=["empty", "excluded", "zero-quantity-and-excluded"])
def test_no_priced_products(products):
    """Only origin and destination costs remain when no line is priced."""
    calc_input = make_input(
        products=products,
        transport_cost=500,
        packing_cost=200,
        fumigation_cost=50,
        customs_clearance_cost=75,
        freight_cost=1000,
        import_duty=300,
        distributor_margin=10,
    )

    result = calculate(calc_input)

    assert result.raw_materials_cost == 0
    assert result.weighted_margin == 0
    assert result.margin_amount == 0
    assert result.product_breakdown == []
    assert result.transport_cost == 500
    assert result.packing_cost == 200
    assert result.freight_cost == 1000
    assert result.import_duty_cost == 300
    assert result.total_procurement_cost == pytest.approx(825)
    assert result.invoice_value == pytest.approx(825)
    assert result.importer_total_cost == pytest.approx(2125)
    assert result.distributor_price == pytest.approx(2337.5)


def test_all_zero_input():
    result = calculate(make_input())

    assert result.total_procurement_cost == 0
    assert result.retailer_price == 0
    assert result.total_margin_percentage == 0
    assert result.product_breakdown == []


def test_zero_price_products_get_zero_allocation():
    """Lines with no value are priced but receive nothing to allocate."""
    calc_input = make_input(
        products=[
            ProductLine(name="Sample Bags", quantity=5, unit_price=0, included=True, margin=40),
            ProductLine(name="Promo", quantity=2, unit_price=0, included=True, margin=10),
        ],
        transport_cost=300,
    )

    result = calculate(calc_input)

    assert result.weighted_margin == 0
    assert [line.name for line in result.product_breakdown] == ["Sample Bags", "Promo"]
    for line in result.product_breakdown:
        assert line.invoice_price == 0
        assert line.distributor_price == 0
        assert line.retailer_price == 0


def test_filter_products():
    lines = [
        ProductLine(name="in", quantity=1, unit_price=1, included=True),
        ProductLine(name="zero", quantity=0, unit_price=1, included=True),
        ProductLine(name="negative", quantity=-3, unit_price=1, included=True),
        ProductLine(name="out", quantity=4, unit_price=1, included=False),
    ]
    assert [p.name for p in filter_products(lines)] == ["in"]


def test_procurement_identity(sample_input):
    result = calculate(sample_input)

    expected = (
        result.raw_materials_cost
        + sample_input.transport_cost
        + sample_input.packing_cost
        + sample_input.fumigation_cost
        + sample_input.customs_clearance_cost
    )
    assert result.total_procurement_cost == expected
    assert result.raw_materials_cost == pytest.approx(20 * 850 + 12.5 * 640)


def test_invoice_identity(sample_input):
    result = calculate(sample_input)

    expected = (
        result.total_procurement_cost
        * (1 + result.weighted_margin / 100)
        * (1 + sample_input.export_duty_rate / 100)
    )
    assert result.invoice_value == pytest.approx(expected, rel=1e-12)
    assert result.pre_duty_invoice_value == pytest.approx(result.total_procurement_cost + result.margin_amount)


def test_staged_totals(sample_input):
    result = calculate(sample_input)

    assert result.other_costs == pytest.approx(500)
    assert result.other_logistics_costs == pytest.approx(1050)
    assert result.total_logistics_cost == pytest.approx(5350)
    assert result.importer_total_cost == pytest.approx(result.invoice_value + 5350)
    assert result.distributor_price == pytest.approx(result.importer_total_cost * 1.12)
    assert result.retailer_price == pytest.approx(result.distributor_price * 1.2)
    assert result.total_margin_percentage == pytest.approx(
        (result.retailer_price - result.total_procurement_cost) / result.total_procurement_cost * 100
    )


@pytest.mark.parametrize("tier", ["invoice_price", "distributor_price", "retailer_price"])
def test_allocation_round_trip(sample_input, tier):
    """Per-unit prices weighted by quantity add back up to the blended total."""
    result = calculate(sample_input)
    blended = {
        "invoice_price": result.invoice_value,
        "distributor_price": result.distributor_price,
        "retailer_price": result.retailer_price,
    }[tier]

    allocated = sum(getattr(line, tier) * line.quantity for line in result.product_breakdown)

    assert allocated == pytest.approx(blended, rel=1e-6)


def test_line_margin_is_echoed_not_applied():
    """Each line is priced from the blended margin, so equal-value lines get equal totals."""
    calc_input = make_input(products=[
        ProductLine(name="High", quantity=10, unit_price=100, included=True, margin=40),
        ProductLine(name="Low", quantity=10, unit_price=100, included=True, margin=5),
    ])

    high, low = calculate(calc_input).product_breakdown

    assert high.margin == 40
    assert low.margin == 5
    assert high.invoice_price == pytest.approx(low.invoice_price)
    assert high.invoice_price == pytest.approx(100 * 1.225)


def test_breakdown_follows_input_order_and_echoes_inputs(sample_input):
    breakdown = calculate(sample_input).product_breakdown

    assert [(b.name, b.quantity, b.unit_cost, b.margin) for b in breakdown] == [
        ("Basmati Rice", 20, 850, 18),
        ("Red Lentils", 12.5, 640, 12),
    ]


def test_percentages_above_100_are_honoured():
    calc_input = make_input(
        products=[ProductLine(name="A", quantity=1, unit_price=100, included=True, margin=150)],
        export_duty_rate=200,
        distributor_margin=120,
        retailer_margin=300,
    )

    result = calculate(calc_input)

    assert result.invoice_value == pytest.approx(100 * 2.5 * 3)
    assert result.distributor_price == pytest.approx(750 * 2.2)
    assert result.retailer_price == pytest.approx(750 * 2.2 * 4)


def test_negative_input_still_computes():
    """Validation belongs to callers; the engine just does the arithmetic."""
    calc_input = make_input(
        products=[ProductLine(name="A", quantity=10, unit_price=-50, included=True, margin=10)],
        transport_cost=-100,
    )

    result = calculate(calc_input)

    assert result.raw_materials_cost == pytest.approx(-500)
    assert result.total_procurement_cost == pytest.approx(-600)
    assert result.total_margin_percentage == 0
    # no positive product value, so no margin and nothing to allocate
    assert result.weighted_margin == 0
    assert result.margin_amount == 0
    assert result.product_breakdown[0].invoice_price == 0
    assert result.product_breakdown[0].retailer_price == 0


def test_input_not_mutated(sample_input):
    before = copy.deepcopy(sample_input)

    calculate(sample_input)

    assert sample_input == before


def test_repeat_calls_are_identical(sample_input):
    first = calculate(sample_input)
    second = calculate(sample_input)

    assert first == second
    assert first is not second
    assert first.to_dict() == second.to_dict()
