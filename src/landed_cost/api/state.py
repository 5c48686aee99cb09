"""
Shared service instances for the API.
"""
from typing import Optional

from ..config.settings import get_settings
from ..services.estimates_service import EstimatesService

_service: Optional[EstimatesService] = None


def get_estimates_service() -> EstimatesService:
    """Get the process-wide estimates service, created on first use."""
    global _service
    if _service is None:
        _service = EstimatesService(get_settings().estimates_file)
    return _service
