from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from landed_cost import __version__
from landed_cost.engine import calculate
from landed_cost.config.logging_config import setup_logging
from landed_cost.api.estimates_api import router as estimates_router
from landed_cost.api.schemas import CalculationRequest

setup_logging()

app = FastAPI(
    title="Landed Cost Estimator API",
    description="Landed cost and multi-tier resale pricing for export containers",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include estimates management API
app.include_router(estimates_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Landed Cost Estimator API Active"}


@app.post("/calculate")
async def calculate_estimate(req: CalculationRequest):
    """Preview a calculation without saving it."""
    results = calculate(req.to_calculation_input())
    return results.to_dict()
