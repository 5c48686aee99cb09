import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from landed_cost.engine import CalculationInput, ProductLine
from landed_cost.services.estimates_service import Estimate, EstimatesService


def make_input(products=None, **costs) -> CalculationInput:
    """CalculationInput with every cost and margin at zero unless given."""
    return CalculationInput(products=products or [], **costs)


@pytest.fixture
def sample_input():
    """A two-product container with costs at every stage."""
    return make_input(
        products=[
            ProductLine(name="Basmati Rice", quantity=20, unit_price=850, included=True, margin=18),
            ProductLine(name="Red Lentils", quantity=12.5, unit_price=640, included=True, margin=12),
            ProductLine(name="Black Gram", quantity=8, unit_price=900, included=False, margin=25),
        ],
        transport_cost=1200,
        packing_cost=450,
        fumigation_cost=180,
        customs_clearance_cost=320,
        export_duty_rate=2.5,
        freight_cost=2800,
        import_duty=1500,
        destination_customs_clearance=400,
        destination_transport=650,
        distributor_margin=12,
        retailer_margin=20,
    )


@pytest.fixture
def service():
    """In-memory estimates service."""
    return EstimatesService()


def make_estimate(container_id="CONT-2024-001", destination="Germany", **overrides) -> Estimate:
    fields = dict(
        container_id=container_id,
        destination=destination,
        estimate_date="2024-05-01",
        products=[
            ProductLine(name="Basmati Rice", quantity=10, unit_price=100, included=True, margin=15),
        ],
        created_by="analyst-1",
        user_role="ops_analyst",
    )
    fields.update(overrides)
    return Estimate(**fields)
