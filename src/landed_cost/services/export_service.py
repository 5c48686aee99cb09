"""
Export Service - CSV reports of a calculated estimate.
"""
import io
from datetime import date
from typing import Optional

import pandas as pd

from ..engine.models import CalculationResults


COST_ROWS = (
    ('Raw Materials Cost', 'raw_materials_cost'),
    ('Transport Cost', 'transport_cost'),
    ('Packing Cost', 'packing_cost'),
    ('Fumigation Cost', 'fumigation_cost'),
    ('Customs Clearance Cost', 'customs_clearance_cost'),
    ('Total Procurement Cost', 'total_procurement_cost'),
    ('Margin Amount', 'margin_amount'),
    ('Export Duty Amount', 'export_duty_amount'),
    ('Invoice Value', 'invoice_value'),
    ('Total Logistics Cost', 'total_logistics_cost'),
    ('Importer Total Cost', 'importer_total_cost'),
    ('Distributor Price', 'distributor_price'),
    ('Retailer Price', 'retailer_price'),
)


def _money(value: float) -> str:
    return f"${value:.2f}"


def cost_breakdown_frame(results: CalculationResults) -> pd.DataFrame:
    """One row per cost stage with its amount."""
    return pd.DataFrame(
        [{'Item': label, 'Amount': getattr(results, attr)} for label, attr in COST_ROWS]
    )


def product_breakdown_frame(results: CalculationResults) -> pd.DataFrame:
    """One row per priced product with its per-unit tier prices."""
    columns = ['Product', 'Quantity', 'Unit Cost', 'Margin %', 'Invoice Price', 'Distributor Price', 'Retailer Price']
    return pd.DataFrame(
        [{
            'Product': line.name,
            'Quantity': line.quantity,
            'Unit Cost': line.unit_cost,
            'Margin %': line.margin,
            'Invoice Price': line.invoice_price,
            'Distributor Price': line.distributor_price,
            'Retailer Price': line.retailer_price,
        } for line in results.product_breakdown],
        columns=columns,
    )


def export_csv(
    results: CalculationResults,
    container_id: str,
    destination: str,
    generated_on: Optional[date] = None,
) -> str:
    """
    Render the estimate as a sectioned CSV report.

    Args:
        results: Calculated breakdown to export
        container_id: Container the estimate belongs to
        destination: Destination country
        generated_on: Report date (defaults to today)

    Returns:
        CSV text with a header block, a cost breakdown and a product breakdown
    """
    generated_on = generated_on or date.today()

    costs = cost_breakdown_frame(results)
    costs['Amount'] = costs['Amount'].map(_money)

    products = product_breakdown_frame(results).drop(columns=['Margin %'])
    products['Quantity'] = products['Quantity'].map(lambda q: f"{q:g} MT")
    for col in ('Unit Cost', 'Invoice Price', 'Distributor Price', 'Retailer Price'):
        products[col] = products[col].map(_money)

    buffer = io.StringIO()
    buffer.write("Grain Export Cost Estimate\n")
    buffer.write(f"Container: {container_id}\n")
    buffer.write(f"Destination: {destination}\n")
    buffer.write(f"Generated: {generated_on.isoformat()}\n")
    buffer.write("\nCost Breakdown\n")
    costs.to_csv(buffer, index=False, lineterminator="\n")
    buffer.write("\nProduct Breakdown\n")
    products.to_csv(buffer, index=False, lineterminator="\n")
    return buffer.getvalue()
