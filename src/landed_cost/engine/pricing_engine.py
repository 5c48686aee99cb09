"""
Pricing Engine - Landed cost and multi-tier resale pricing.

Resolution order (each stage feeds the next; the order changes the numbers):
1. Filter product lines to included lines with quantity > 0
2. Procurement: raw materials + transport + packing + fumigation + customs clearance
3. Weighted average margin over line values, applied to total procurement cost
4. Export duty on the pre-duty invoice value
5. Destination logistics on top of the invoice value (importer total cost)
6. Distributor and retailer markups, compounded
7. Per-product allocation of the blended totals by value share

All arithmetic uses Python floats. The per-line margin is echoed into the
breakdown but does not price its own line: every line is priced from the
blended weighted margin.
"""
import logging

from .models import CalculationInput, CalculationResults, ProductBreakdown, ProductLine

logger = logging.getLogger(__name__)


def filter_products(products: list[ProductLine]) -> list[ProductLine]:
    """Lines that take part in pricing."""
    return [p for p in products if p.included and p.quantity > 0]


def weighted_margin(products: list[ProductLine]) -> float:
    """Value-share weighted average of line margins, 0 unless the lines carry positive value."""
    total_value = sum(p.value for p in products)
    if total_value <= 0:
        return 0.0
    return sum(p.margin * (p.value / total_value) for p in products)


def allocate(
    products: list[ProductLine],
    invoice_value: float,
    distributor_price: float,
    retailer_price: float,
) -> list[ProductBreakdown]:
    """
    Split blended totals across lines by value share and express them per unit.

    Importer total cost has no per-unit column in the breakdown, so it is
    not allocated.
    """
    total_value = sum(p.value for p in products)
    breakdown = []
    for product in products:
        share = product.value / total_value if total_value > 0 else 0.0

        allocated_invoice = invoice_value * share
        allocated_distributor = distributor_price * share
        allocated_retailer = retailer_price * share

        breakdown.append(ProductBreakdown(
            name=product.name,
            quantity=product.quantity,
            unit_cost=product.unit_price,
            margin=product.margin,
            invoice_price=allocated_invoice / product.quantity,
            distributor_price=allocated_distributor / product.quantity,
            retailer_price=allocated_retailer / product.quantity,
        ))
    return breakdown


def calculate(calc_input: CalculationInput) -> CalculationResults:
    """
    Calculate the full cost and price breakdown for an estimate.

    Args:
        calc_input: CalculationInput with products, costs and tier margins

    Returns:
        New CalculationResults; the input is never modified
    """
    products = filter_products(calc_input.products)

    # Procurement
    raw_materials_cost = sum(p.value for p in products)
    other_costs = calc_input.fumigation_cost + calc_input.customs_clearance_cost
    total_procurement_cost = (
        raw_materials_cost
        + calc_input.transport_cost
        + calc_input.packing_cost
        + other_costs
    )

    # Invoice
    margin = weighted_margin(products)
    margin_amount = total_procurement_cost * (margin / 100)
    pre_duty_invoice_value = total_procurement_cost + margin_amount
    export_duty_amount = pre_duty_invoice_value * (calc_input.export_duty_rate / 100)
    invoice_value = pre_duty_invoice_value + export_duty_amount

    # Destination
    other_logistics_costs = calc_input.destination_customs_clearance + calc_input.destination_transport
    total_logistics_cost = calc_input.freight_cost + calc_input.import_duty + other_logistics_costs
    importer_total_cost = invoice_value + total_logistics_cost

    # Resale tiers
    distributor_price = importer_total_cost * (1 + calc_input.distributor_margin / 100)
    retailer_price = distributor_price * (1 + calc_input.retailer_margin / 100)

    if total_procurement_cost > 0:
        total_margin_percentage = (retailer_price - total_procurement_cost) / total_procurement_cost * 100
    else:
        total_margin_percentage = 0.0

    logger.debug(
        "Calculated estimate: %d of %d lines priced, procurement=%.2f, retail=%.2f",
        len(products), len(calc_input.products), total_procurement_cost, retailer_price,
    )

    return CalculationResults(
        raw_materials_cost=raw_materials_cost,
        transport_cost=calc_input.transport_cost,
        packing_cost=calc_input.packing_cost,
        fumigation_cost=calc_input.fumigation_cost,
        customs_clearance_cost=calc_input.customs_clearance_cost,
        other_costs=other_costs,
        total_procurement_cost=total_procurement_cost,
        weighted_margin=margin,
        margin_amount=margin_amount,
        pre_duty_invoice_value=pre_duty_invoice_value,
        export_duty_amount=export_duty_amount,
        invoice_value=invoice_value,
        freight_cost=calc_input.freight_cost,
        import_duty_cost=calc_input.import_duty,
        destination_customs_clearance=calc_input.destination_customs_clearance,
        destination_transport=calc_input.destination_transport,
        other_logistics_costs=other_logistics_costs,
        total_logistics_cost=total_logistics_cost,
        importer_total_cost=importer_total_cost,
        distributor_price=distributor_price,
        retailer_price=retailer_price,
        total_margin_percentage=total_margin_percentage,
        product_breakdown=allocate(
            products, invoice_value, distributor_price, retailer_price
        ),
    )
