"""
Estimates Service - CRUD operations for container estimates.
Keeps estimates in memory and mirrors them to a JSON file when one is configured.
"""
import copy
import json
import logging
import os
import threading
from pathlib import Path
from datetime import date
from typing import Optional
from dataclasses import dataclass, field, replace

from ..config.settings import ESTIMATE_STATUSES, USER_ROLES
from ..engine import calculate, CalculationInput, ProductLine

logger = logging.getLogger(__name__)


# Monetary and percentage fields, persisted as decimal strings
NUMERIC_KEYS = dict(CalculationInput.WIRE_KEYS, default_margin='defaultMargin')

TEXT_KEYS = {
    'container_id': 'containerId',
    'destination': 'destination',
    'estimate_date': 'estimateDate',
    'status': 'status',
    'created_by': 'createdBy',
    'user_role': 'userRole',
}

# Fields whose change invalidates stored calculation results
PRICING_FIELDS = {'products', *CalculationInput.WIRE_KEYS}


class EstimateNotFoundError(ValueError):
    """Raised when an estimate ID has no record."""


class EstimateValidationError(ValueError):
    """Raised when an estimate fails validation; carries the field-level errors."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass
class Estimate:
    """A stored container estimate: the pricing input plus the results it produced."""
    container_id: str
    destination: str
    estimate_date: str = field(default_factory=lambda: date.today().isoformat())
    id: Optional[int] = None
    status: str = 'draft'
    products: list[ProductLine] = field(default_factory=list)

    # Procurement costs
    transport_cost: float = 0.0
    packing_cost: float = 0.0
    fumigation_cost: float = 0.0
    customs_clearance_cost: float = 0.0
    export_duty_rate: float = 0.0

    default_margin: float = 15.0

    # Logistics costs at destination
    freight_cost: float = 0.0
    import_duty: float = 0.0
    destination_customs_clearance: float = 0.0
    destination_transport: float = 0.0

    # Multi-tier margins
    distributor_margin: float = 12.0
    retailer_margin: float = 20.0

    calculation_results: Optional[dict] = None

    created_by: str = ''
    user_role: str = 'ops_analyst'

    def to_calculation_input(self) -> CalculationInput:
        """Build the engine input from this estimate's pricing fields."""
        return CalculationInput(
            products=[replace(p) for p in self.products],
            **{attr: getattr(self, attr) for attr in CalculationInput.WIRE_KEYS},
        )

    def recalculate(self):
        """Recompute and store calculation results from the current fields."""
        self.calculation_results = calculate(self.to_calculation_input()).to_dict()

    def to_dict(self, decimal_strings: bool = False) -> dict:
        """
        Convert to the camelCase record format.

        With decimal_strings=True numeric cost fields are written as strings,
        which is how the store persists them.
        """
        data = {'id': self.id}
        for attr, key in TEXT_KEYS.items():
            data[key] = getattr(self, attr)
        data['products'] = [p.to_dict() for p in self.products]
        for attr, key in NUMERIC_KEYS.items():
            value = getattr(self, attr)
            data[key] = str(value) if decimal_strings else value
        data['calculationResults'] = self.calculation_results
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Estimate':
        """Create an Estimate from a record; numeric fields may be numbers or decimal strings."""
        kwargs = {}
        for attr, key in TEXT_KEYS.items():
            if data.get(key) is not None:
                kwargs[attr] = str(data[key])
        for attr, key in NUMERIC_KEYS.items():
            if data.get(key) not in (None, ''):
                kwargs[attr] = float(data[key])
        return cls(
            id=int(data['id']) if data.get('id') is not None else None,
            products=[ProductLine.from_dict(p) for p in data.get('products') or []],
            calculation_results=data.get('calculationResults'),
            **kwargs,
        )


@dataclass
class ValidationResult:
    """Result of estimate validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class EstimatesService:
    """Service for managing container estimates."""

    def __init__(self, data_path: Optional[Path] = None):
        self.data_path = Path(data_path) if data_path else None
        self._estimates: dict[int, Estimate] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self._load()

    def _load(self):
        """Load estimates from the JSON data file, if present."""
        if not self.data_path or not self.data_path.exists():
            return

        try:
            with open(self.data_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Could not read estimates file {self.data_path}: {e}") from e

        for record in data.get('estimates', []):
            estimate = Estimate.from_dict(record)
            self._estimates[estimate.id] = estimate

        highest = max(self._estimates, default=0)
        self._next_id = max(int(data.get('nextId', 1)), highest + 1)
        logger.info("Loaded %d estimates from %s", len(self._estimates), self.data_path)

    def _write(self):
        """Write all estimates back to the JSON data file."""
        if not self.data_path:
            return

        self.data_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            'nextId': self._next_id,
            'estimates': [e.to_dict(decimal_strings=True) for e in self._sorted(self._estimates.values())],
        }
        tmp_path = self.data_path.with_suffix(self.data_path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, self.data_path)

    @staticmethod
    def _sorted(estimates) -> list[Estimate]:
        """Most recent first (highest ID first)."""
        return sorted(estimates, key=lambda e: e.id, reverse=True)

    def list_estimates(self, status: Optional[str] = None, query: Optional[str] = None) -> list[Estimate]:
        """List all estimates, optionally narrowed by status and search text."""
        with self._lock:
            estimates = [copy.deepcopy(e) for e in self._estimates.values()]

        if status:
            estimates = [e for e in estimates if e.status == status]
        if query:
            needle = query.lower()
            estimates = [
                e for e in estimates
                if needle in e.container_id.lower() or needle in e.destination.lower()
            ]
        return self._sorted(estimates)

    def list_by_status(self, status: str) -> list[Estimate]:
        """List estimates with the given status."""
        return self.list_estimates(status=status)

    def list_by_user(self, created_by: str) -> list[Estimate]:
        """List estimates owned by a user."""
        return [e for e in self.list_estimates() if e.created_by == created_by]

    def search_estimates(self, query: str) -> list[Estimate]:
        """Case-insensitive substring search over container ID and destination."""
        return self.list_estimates(query=query)

    def get_estimate(self, estimate_id: int) -> Optional[Estimate]:
        """Get a single estimate by ID."""
        with self._lock:
            estimate = self._estimates.get(estimate_id)
        return copy.deepcopy(estimate) if estimate else None

    def create_estimate(self, estimate: Estimate) -> Estimate:
        """
        Create a new estimate with a generated ID.

        Calculation results supplied with the estimate are stored verbatim;
        otherwise they are calculated from the estimate's pricing fields.
        """
        validation = self.validate_estimate(estimate)
        if not validation.valid:
            raise EstimateValidationError(validation.errors)

        created = copy.deepcopy(estimate)
        if created.calculation_results is None:
            created.recalculate()

        with self._lock:
            created.id = self._next_id
            self._next_id += 1
            self._estimates[created.id] = created
            self._write()

        logger.info("Created estimate %d (%s → %s)", created.id, created.container_id, created.destination)
        return copy.deepcopy(created)

    def update_estimate(self, estimate_id: int, updates: dict) -> Estimate:
        """
        Update an existing estimate.

        Stored results are recalculated when a pricing field changes and the
        update does not carry its own results.
        """
        with self._lock:
            existing = self._estimates.get(estimate_id)
            if existing is None:
                raise EstimateNotFoundError(f"Estimate {estimate_id} not found")

            updated = copy.deepcopy(existing)
            for key, value in updates.items():
                if key == 'id' or not hasattr(updated, key):
                    continue
                if key == 'products':
                    value = [p if isinstance(p, ProductLine) else ProductLine(**p) for p in value]
                setattr(updated, key, value)

            validation = self.validate_estimate(updated)
            if not validation.valid:
                raise EstimateValidationError(validation.errors)

            if PRICING_FIELDS & updates.keys() and updates.get('calculation_results') is None:
                updated.recalculate()

            self._estimates[estimate_id] = updated
            self._write()

        logger.info("Updated estimate %d (%s)", estimate_id, ", ".join(sorted(updates)))
        return copy.deepcopy(updated)

    def delete_estimate(self, estimate_id: int) -> bool:
        """Delete an estimate."""
        with self._lock:
            if self._estimates.pop(estimate_id, None) is None:
                raise EstimateNotFoundError(f"Estimate {estimate_id} not found")
            self._write()

        logger.info("Deleted estimate %d", estimate_id)
        return True

    def duplicate_estimate(self, estimate_id: int) -> Estimate:
        """Copy an estimate as a new draft with a -COPY container ID."""
        original = self.get_estimate(estimate_id)
        if original is None:
            raise EstimateNotFoundError("Original estimate not found")

        duplicate = replace(
            original,
            id=None,
            container_id=f"{original.container_id}-COPY",
            status='draft',
        )
        return self.create_estimate(duplicate)

    def validate_estimate(self, estimate: Estimate) -> ValidationResult:
        """Validate an estimate before saving."""
        result = ValidationResult(valid=True)

        # Required fields
        if not estimate.container_id:
            result.errors.append("Container ID is required")
        if not estimate.destination:
            result.errors.append("Destination is required")
        if not estimate.estimate_date:
            result.errors.append("Estimate date is required")

        if estimate.status not in ESTIMATE_STATUSES:
            result.errors.append(
                f"Status must be one of {', '.join(ESTIMATE_STATUSES)} (got '{estimate.status}')"
            )
        if estimate.user_role and estimate.user_role not in USER_ROLES:
            result.errors.append(f"Unknown user role '{estimate.user_role}'")

        # Non-negative costs and rates
        for attr, key in NUMERIC_KEYS.items():
            if getattr(estimate, attr) < 0:
                result.errors.append(f"{key} must be greater than or equal to 0")

        seen = set()
        for i, product in enumerate(estimate.products):
            if product.name in seen:
                result.errors.append(f"Duplicate product name '{product.name}'")
            seen.add(product.name)
            for attr, key in (('quantity', 'quantity'), ('unit_price', 'unitPrice'), ('margin', 'margin')):
                if getattr(product, attr) < 0:
                    result.errors.append(f"products.{i}.{key} must be greater than or equal to 0")

        if not any(p.included and p.quantity > 0 for p in estimate.products):
            result.warnings.append("No products are included with a quantity above zero")

        result.valid = not result.errors
        return result
