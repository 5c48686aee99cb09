"""Engine subpackage - core landed cost and resale pricing logic."""
from .pricing_engine import calculate
from .models import CalculationInput, CalculationResults, ProductBreakdown, ProductLine

__all__ = ['calculate', 'CalculationInput', 'CalculationResults', 'ProductBreakdown', 'ProductLine']
