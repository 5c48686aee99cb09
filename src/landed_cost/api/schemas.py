"""
Request/response models for the HTTP API.

Fields are snake_case in Python and camelCase on the wire.
"""
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from ..engine import CalculationInput, ProductLine
from ..services.estimates_service import Estimate


# Non-negative number; numeric strings are rejected
Amount = Annotated[float, Field(ge=0, strict=True)]
# Any number; numeric strings are rejected
Number = Annotated[float, Field(strict=True)]


class WireModel(BaseModel):
    """Base model accepting camelCase keys or field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductIn(WireModel):
    """One commodity line."""
    name: str
    quantity: Amount
    unit_price: Amount
    included: bool
    margin: Amount

    def to_product_line(self) -> ProductLine:
        return ProductLine(**self.model_dump())


class CalculationRequest(WireModel):
    """Request model for a pricing calculation."""
    products: list[ProductIn]
    transport_cost: Amount
    packing_cost: Amount
    fumigation_cost: Amount
    customs_clearance_cost: Amount
    export_duty_rate: Amount
    freight_cost: Amount
    import_duty: Amount
    destination_customs_clearance: Amount
    destination_transport: Amount
    distributor_margin: Amount
    retailer_margin: Amount

    @model_validator(mode='after')
    def check_unique_names(self) -> 'CalculationRequest':
        names = [p.name for p in self.products]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate product name(s): {', '.join(duplicates)}")
        return self

    def to_calculation_input(self) -> CalculationInput:
        data = self.model_dump(exclude={'products'})
        return CalculationInput(
            products=[p.to_product_line() for p in self.products],
            **data,
        )


class ProductBreakdownIn(WireModel):
    """One per-unit line of stored calculation results."""
    name: str
    quantity: Number
    unit_cost: Number
    margin: Number
    invoice_price: Number
    distributor_price: Number
    retailer_price: Number


class CalculationResultsIn(WireModel):
    """Calculation results supplied with an estimate, checked field by field."""
    raw_materials_cost: Number
    transport_cost: Number
    packing_cost: Number
    fumigation_cost: Number
    customs_clearance_cost: Number
    other_costs: Number
    total_procurement_cost: Number
    weighted_margin: Number = 0.0
    margin_amount: Number
    pre_duty_invoice_value: Number = 0.0
    export_duty_amount: Number
    invoice_value: Number
    freight_cost: Number
    import_duty_cost: Number
    destination_customs_clearance: Number
    destination_transport: Number
    other_logistics_costs: Number
    total_logistics_cost: Number
    importer_total_cost: Number
    distributor_price: Number
    retailer_price: Number
    total_margin_percentage: Number
    product_breakdown: list[ProductBreakdownIn]

    def to_record(self) -> dict:
        """camelCase dict in the same shape the engine's results serialize to."""
        return self.model_dump(by_alias=True)


Status = Literal['draft', 'completed', 'archived']
Role = Literal['admin', 'ops_analyst']


class EstimateCreate(WireModel):
    """Request model for creating an estimate."""
    container_id: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    estimate_date: str = Field(min_length=1)
    status: Status = 'draft'
    products: list[ProductIn] = Field(default_factory=list)
    transport_cost: Amount = 0.0
    packing_cost: Amount = 0.0
    fumigation_cost: Amount = 0.0
    customs_clearance_cost: Amount = 0.0
    export_duty_rate: Amount = 0.0
    default_margin: Amount = 15.0
    freight_cost: Amount = 0.0
    import_duty: Amount = 0.0
    destination_customs_clearance: Amount = 0.0
    destination_transport: Amount = 0.0
    distributor_margin: Amount = 12.0
    retailer_margin: Amount = 20.0
    calculation_results: Optional[CalculationResultsIn] = None
    created_by: str = Field(min_length=1)
    user_role: Role

    def to_estimate(self) -> Estimate:
        data = self.model_dump(exclude={'products', 'calculation_results'})
        return Estimate(
            products=[p.to_product_line() for p in self.products],
            calculation_results=self.calculation_results.to_record() if self.calculation_results else None,
            **data,
        )


class EstimateUpdate(WireModel):
    """Request model for updating an estimate. Only fields present in the body are applied."""
    container_id: Optional[str] = Field(default=None, min_length=1)
    destination: Optional[str] = Field(default=None, min_length=1)
    estimate_date: Optional[str] = Field(default=None, min_length=1)
    status: Optional[Status] = None
    products: Optional[list[ProductIn]] = None
    transport_cost: Optional[Amount] = None
    packing_cost: Optional[Amount] = None
    fumigation_cost: Optional[Amount] = None
    customs_clearance_cost: Optional[Amount] = None
    export_duty_rate: Optional[Amount] = None
    default_margin: Optional[Amount] = None
    freight_cost: Optional[Amount] = None
    import_duty: Optional[Amount] = None
    destination_customs_clearance: Optional[Amount] = None
    destination_transport: Optional[Amount] = None
    distributor_margin: Optional[Amount] = None
    retailer_margin: Optional[Amount] = None
    calculation_results: Optional[CalculationResultsIn] = None
    created_by: Optional[str] = None
    user_role: Optional[Role] = None

    def to_updates(self) -> dict:
        """Fields explicitly set in the request, with products as ProductLines."""
        updates = self.model_dump(exclude_unset=True, exclude={'products', 'calculation_results'})
        if self.products is not None:
            updates['products'] = [p.to_product_line() for p in self.products]
        if self.calculation_results is not None:
            updates['calculation_results'] = self.calculation_results.to_record()
        # null means "leave unchanged"
        return {k: v for k, v in updates.items() if v is not None}


def validation_errors(error: ValidationError) -> list[dict]:
    """Flatten a pydantic ValidationError into field-level messages."""
    return [
        {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
        for err in error.errors()
    ]
