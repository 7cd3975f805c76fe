from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
import logging

# Use relative imports
from . import schemas, logic, config
from .errors import InvalidInput

# Basic logging setup
logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Pricing Service starting up...")
    logger.info(f"Listening on {config.APP_HOST}:{config.APP_PORT}")
    yield
    logger.info("Pricing Service shutting down...")


app = FastAPI(
    title="Pricing Service",
    description="Calculates delivery cost from distance, weight and urgency.",
    version="0.1.0",
    lifespan=lifespan
)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    logger.warning(f"Rejected pricing input on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": [{"field": exc.field, "msg": exc.message}]},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation failed on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.get("/health", tags=["Monitoring"], summary="Health Check")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy"}

@app.post(
    "/calculate_cost",
    response_model=schemas.CostBreakdown,
    tags=["Pricing"],
    summary="Calculate Delivery Cost"
)
async def calculate_cost_endpoint(request_data: schemas.ShipmentRequest):
    """
    Receives shipment attributes and returns the full cost breakdown
    (distance, weight, urgency surcharge, discount, heavy cargo fee).
    """
    logger.info(f"Received cost calculation request: {request_data.model_dump()}")
    try:
        return logic.compute_cost_for(request_data)
    except InvalidInput:
        raise
    except Exception as e:
        logger.exception(f"Error calculating delivery cost: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred during cost calculation."
        )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("pricing_service.main:app", host=config.APP_HOST, port=config.APP_PORT)
