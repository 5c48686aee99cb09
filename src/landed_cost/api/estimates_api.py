"""
Estimates API - FastAPI router for estimate management.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from pydantic import ValidationError

from ..engine.models import CalculationResults
from ..services.estimates_service import (
    EstimateNotFoundError,
    EstimatesService,
    EstimateValidationError,
)
from ..services.export_service import export_csv
from ..services.reporting import dashboard_summary, optimization_totals, recommend_optimizations
from .schemas import EstimateCreate, EstimateUpdate, validation_errors
from .state import get_estimates_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/estimates", tags=["estimates"])


def _invalid(errors: list) -> HTTPException:
    return HTTPException(status_code=400, detail={"message": "Invalid data", "errors": errors})


def _failed(action: str) -> HTTPException:
    logger.exception("Failed to %s", action)
    return HTTPException(status_code=500, detail=f"Failed to {action}")


def _results_or_calculate(estimate) -> CalculationResults:
    if estimate.calculation_results is None:
        estimate.recalculate()
    return CalculationResults.from_dict(estimate.calculation_results)


# Endpoints

@router.get("")
def list_estimates(
    status: Optional[str] = None,
    q: Optional[str] = None,
    service: EstimatesService = Depends(get_estimates_service),
):
    """List all estimates, most recent first."""
    try:
        return [e.to_dict() for e in service.list_estimates(status=status, query=q)]
    except Exception:
        raise _failed("fetch estimates")


@router.get("/status/{status}")
def list_by_status(status: str, service: EstimatesService = Depends(get_estimates_service)):
    """List estimates with a given status."""
    try:
        return [e.to_dict() for e in service.list_by_status(status)]
    except Exception:
        raise _failed("fetch estimates by status")


@router.get("/search")
def search_estimates(
    q: Optional[str] = None,
    service: EstimatesService = Depends(get_estimates_service),
):
    """Search estimates by container ID or destination."""
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    try:
        return [e.to_dict() for e in service.search_estimates(q)]
    except Exception:
        raise _failed("search estimates")


@router.get("/summary")
def get_summary(service: EstimatesService = Depends(get_estimates_service)):
    """Dashboard figures across all stored estimates."""
    try:
        return dashboard_summary(service.list_estimates())
    except Exception:
        raise _failed("summarize estimates")


@router.get("/{estimate_id}")
def get_estimate(estimate_id: int, service: EstimatesService = Depends(get_estimates_service)):
    """Get a single estimate by ID."""
    estimate = service.get_estimate(estimate_id)
    if not estimate:
        raise HTTPException(status_code=404, detail="Estimate not found")
    return estimate.to_dict()


@router.post("", status_code=201)
def create_estimate(
    payload: dict = Body(...),
    service: EstimatesService = Depends(get_estimates_service),
):
    """Create a new estimate; results are calculated when the body carries none."""
    try:
        estimate = EstimateCreate.model_validate(payload).to_estimate()
    except ValidationError as e:
        raise _invalid(validation_errors(e))

    try:
        return service.create_estimate(estimate).to_dict()
    except EstimateValidationError as e:
        raise _invalid(e.errors)
    except Exception:
        raise _failed("create estimate")


@router.patch("/{estimate_id}")
def update_estimate(
    estimate_id: int,
    payload: dict = Body(...),
    service: EstimatesService = Depends(get_estimates_service),
):
    """Update an existing estimate with the fields present in the body."""
    try:
        updates = EstimateUpdate.model_validate(payload).to_updates()
    except ValidationError as e:
        raise _invalid(validation_errors(e))

    try:
        return service.update_estimate(estimate_id, updates).to_dict()
    except EstimateNotFoundError:
        raise HTTPException(status_code=404, detail="Estimate not found")
    except EstimateValidationError as e:
        raise _invalid(e.errors)
    except Exception:
        raise _failed("update estimate")


@router.delete("/{estimate_id}", status_code=204)
def delete_estimate(estimate_id: int, service: EstimatesService = Depends(get_estimates_service)):
    """Delete an estimate."""
    try:
        service.delete_estimate(estimate_id)
    except EstimateNotFoundError:
        raise HTTPException(status_code=404, detail="Estimate not found")
    except Exception:
        raise _failed("delete estimate")
    return Response(status_code=204)


@router.post("/{estimate_id}/duplicate", status_code=201)
def duplicate_estimate(estimate_id: int, service: EstimatesService = Depends(get_estimates_service)):
    """Copy an estimate as a new draft."""
    try:
        return service.duplicate_estimate(estimate_id).to_dict()
    except EstimateNotFoundError:
        raise HTTPException(status_code=404, detail="Original estimate not found")
    except Exception:
        raise _failed("duplicate estimate")


@router.get("/{estimate_id}/export.csv")
def export_estimate(estimate_id: int, service: EstimatesService = Depends(get_estimates_service)):
    """Download the estimate breakdown as CSV."""
    estimate = service.get_estimate(estimate_id)
    if not estimate:
        raise HTTPException(status_code=404, detail="Estimate not found")
    try:
        content = export_csv(_results_or_calculate(estimate), estimate.container_id, estimate.destination)
    except Exception:
        raise _failed("export estimate")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="estimate-{estimate.container_id}.csv"'},
    )


@router.get("/{estimate_id}/optimize")
def optimize_estimate(
    estimate_id: int,
    target_margin: float = Query(20.0, ge=0),
    service: EstimatesService = Depends(get_estimates_service),
):
    """Cost-reduction and margin recommendations for an estimate."""
    estimate = service.get_estimate(estimate_id)
    if not estimate:
        raise HTTPException(status_code=404, detail="Estimate not found")
    try:
        recs = recommend_optimizations(_results_or_calculate(estimate), target_margin=target_margin)
    except Exception:
        raise _failed("optimize estimate")
    return {
        "recommendations": [r.to_dict() for r in recs],
        **optimization_totals(recs),
    }
