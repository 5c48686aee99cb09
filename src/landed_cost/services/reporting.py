"""
Reporting - dashboard figures over stored estimates and cost-reduction suggestions
for a single calculated estimate.
"""
from dataclasses import dataclass

from ..config.settings import ESTIMATE_STATUSES
from ..engine.models import CalculationResults
from .estimates_service import Estimate


PRIORITY_ORDER = {'high': 3, 'medium': 2, 'low': 1}


@dataclass
class Recommendation:
    """A suggested cost or margin improvement."""
    category: str
    description: str
    impact: float
    implementation_cost: float
    priority: str  # high, medium, low
    timeframe: str

    def to_dict(self) -> dict:
        return {
            'category': self.category,
            'description': self.description,
            'impact': self.impact,
            'implementationCost': self.implementation_cost,
            'priority': self.priority,
            'timeframe': self.timeframe,
        }


def dashboard_summary(estimates: list[Estimate]) -> dict:
    """Headline figures for the dashboard."""
    total_value = 0.0
    for estimate in estimates:
        results = estimate.calculation_results or {}
        total_value += float(results.get('importerTotalCost') or 0)

    by_status = {status: 0 for status in ESTIMATE_STATUSES}
    for estimate in estimates:
        by_status[estimate.status] = by_status.get(estimate.status, 0) + 1

    average_margin = (
        sum(e.default_margin for e in estimates) / len(estimates) if estimates else 0.0
    )

    return {
        'total_estimates': len(estimates),
        'completed': by_status.get('completed', 0),
        'total_value': total_value,
        'average_margin': average_margin,
        'by_status': by_status,
    }


def recommend_optimizations(results: CalculationResults, target_margin: float = 20.0) -> list[Recommendation]:
    """
    Suggest where an estimate could save cost or gain margin.

    Savings are fixed shares of each cost stage; a margin recommendation is
    added when the overall margin is below target_margin.
    """
    recs = []

    if results.raw_materials_cost > 0:
        impact = results.raw_materials_cost * 0.05
        recs.append(Recommendation(
            category='Raw Materials',
            description='Negotiate better supplier contracts or explore alternative sourcing',
            impact=impact,
            implementation_cost=impact * 0.1,
            priority='high',
            timeframe='2-3 months',
        ))

    if results.transport_cost > 0:
        impact = results.transport_cost * 0.15
        recs.append(Recommendation(
            category='Transport',
            description='Optimize route planning and consolidate shipments',
            impact=impact,
            implementation_cost=impact * 0.05,
            priority='medium',
            timeframe='1-2 months',
        ))

    if results.packing_cost > 0:
        impact = results.packing_cost * 0.20
        recs.append(Recommendation(
            category='Packaging',
            description='Implement eco-friendly packaging and bulk purchasing',
            impact=impact,
            implementation_cost=impact * 0.15,
            priority='medium',
            timeframe='1 month',
        ))

    if results.total_logistics_cost > 0:
        impact = results.total_logistics_cost * 0.08
        recs.append(Recommendation(
            category='Logistics',
            description='Partner with freight forwarders for better rates',
            impact=impact,
            implementation_cost=impact * 0.02,
            priority='high',
            timeframe='3-4 months',
        ))

    if results.total_margin_percentage < target_margin:
        gap = target_margin - results.total_margin_percentage
        recs.append(Recommendation(
            category='Margin Enhancement',
            description=f'Increase margins by {gap:.1f}% through premium positioning',
            impact=results.retailer_price * gap / 100,
            implementation_cost=0.0,
            priority='high',
            timeframe='Immediate',
        ))

    # Stable sort keeps insertion order within a priority
    return sorted(recs, key=lambda r: PRIORITY_ORDER[r.priority], reverse=True)


def optimization_totals(recs: list[Recommendation]) -> dict:
    """Total savings, implementation cost and net benefit of a set of recommendations."""
    savings = sum(r.impact for r in recs)
    implementation_cost = sum(r.implementation_cost for r in recs)
    return {
        'total_savings': savings,
        'implementation_cost': implementation_cost,
        'net_benefit': savings - implementation_cost,
    }
