"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
Field names are snake_case in Python and camelCase on the wire.
"""
from dataclasses import dataclass, field, fields


def _num(data: dict, key: str, default: float = 0.0) -> float:
    value = data.get(key)
    if value is None or value == "":
        return default
    return float(value)


@dataclass
class ProductLine:
    """A single commodity entry in a pricing request."""
    name: str
    quantity: float = 0.0  # metric tons
    unit_price: float = 0.0
    included: bool = False
    margin: float = 0.0  # percent, procurement → invoice

    @property
    def value(self) -> float:
        """Line value at procurement price."""
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "included": self.included,
            "margin": self.margin,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ProductLine':
        return cls(
            name=str(data.get("name", "")),
            quantity=_num(data, "quantity"),
            unit_price=_num(data, "unitPrice"),
            included=bool(data.get("included", False)),
            margin=_num(data, "margin"),
        )


@dataclass
class CalculationInput:
    """A complete pricing request: products, origin costs, destination costs and tier margins."""
    products: list[ProductLine] = field(default_factory=list)

    # Origin procurement costs
    transport_cost: float = 0.0
    packing_cost: float = 0.0
    fumigation_cost: float = 0.0
    customs_clearance_cost: float = 0.0
    export_duty_rate: float = 0.0  # percent of pre-duty invoice value

    # Destination logistics costs
    freight_cost: float = 0.0
    import_duty: float = 0.0
    destination_customs_clearance: float = 0.0
    destination_transport: float = 0.0

    # Resale tiers (percent)
    distributor_margin: float = 0.0
    retailer_margin: float = 0.0

    # snake_case field → camelCase wire key
    WIRE_KEYS = {
        "transport_cost": "transportCost",
        "packing_cost": "packingCost",
        "fumigation_cost": "fumigationCost",
        "customs_clearance_cost": "customsClearanceCost",
        "export_duty_rate": "exportDutyRate",
        "freight_cost": "freightCost",
        "import_duty": "importDuty",
        "destination_customs_clearance": "destinationCustomsClearance",
        "destination_transport": "destinationTransport",
        "distributor_margin": "distributorMargin",
        "retailer_margin": "retailerMargin",
    }

    def to_dict(self) -> dict:
        data = {"products": [p.to_dict() for p in self.products]}
        for attr, key in self.WIRE_KEYS.items():
            data[key] = getattr(self, attr)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'CalculationInput':
        return cls(
            products=[ProductLine.from_dict(p) for p in data.get("products") or []],
            **{attr: _num(data, key) for attr, key in cls.WIRE_KEYS.items()},
        )


@dataclass
class ProductBreakdown:
    """Per-product slice of the blended totals, expressed per unit."""
    name: str
    quantity: float
    unit_cost: float
    margin: float
    invoice_price: float
    distributor_price: float
    retailer_price: float

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unitCost": self.unit_cost,
            "margin": self.margin,
            "invoicePrice": self.invoice_price,
            "distributorPrice": self.distributor_price,
            "retailerPrice": self.retailer_price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ProductBreakdown':
        return cls(
            name=str(data.get("name", "")),
            quantity=_num(data, "quantity"),
            unit_cost=_num(data, "unitCost"),
            margin=_num(data, "margin"),
            invoice_price=_num(data, "invoicePrice"),
            distributor_price=_num(data, "distributorPrice"),
            retailer_price=_num(data, "retailerPrice"),
        )


@dataclass
class CalculationResults:
    """Complete cost and price breakdown, including every intermediate subtotal."""
    raw_materials_cost: float = 0.0
    transport_cost: float = 0.0
    packing_cost: float = 0.0
    fumigation_cost: float = 0.0
    customs_clearance_cost: float = 0.0
    other_costs: float = 0.0
    total_procurement_cost: float = 0.0
    weighted_margin: float = 0.0
    margin_amount: float = 0.0
    pre_duty_invoice_value: float = 0.0
    export_duty_amount: float = 0.0
    invoice_value: float = 0.0
    freight_cost: float = 0.0
    import_duty_cost: float = 0.0
    destination_customs_clearance: float = 0.0
    destination_transport: float = 0.0
    other_logistics_costs: float = 0.0
    total_logistics_cost: float = 0.0
    importer_total_cost: float = 0.0
    distributor_price: float = 0.0
    retailer_price: float = 0.0
    total_margin_percentage: float = 0.0
    product_breakdown: list[ProductBreakdown] = field(default_factory=list)

    @staticmethod
    def _wire_key(attr: str) -> str:
        head, *rest = attr.split("_")
        return head + "".join(part.title() for part in rest)

    def to_dict(self) -> dict:
        """Convert to the camelCase dict stored alongside an estimate."""
        data = {}
        for f in fields(self):
            if f.name == "product_breakdown":
                continue
            data[self._wire_key(f.name)] = getattr(self, f.name)
        data["productBreakdown"] = [line.to_dict() for line in self.product_breakdown]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'CalculationResults':
        kwargs = {
            f.name: _num(data, cls._wire_key(f.name))
            for f in fields(cls)
            if f.name != "product_breakdown"
        }
        kwargs["product_breakdown"] = [
            ProductBreakdown.from_dict(line) for line in data.get("productBreakdown") or []
        ]
        return cls(**kwargs)
