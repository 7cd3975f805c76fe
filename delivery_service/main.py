from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession
from contextlib import asynccontextmanager
import logging
import uuid

# Use relative imports within the service package
from . import crud, schemas, config, database
from .database import get_db_session, Base
from pricing_service import logic
from pricing_service.errors import InvalidInput

# Configure logging basic setup
logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
logger = logging.getLogger(__name__)


# --- Lifespan for creating tables ---
# Use this only for development/testing. Use a migration tool for production schemas.
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Delivery Service starting up...")
    logger.info("Checking/Creating database tables...")
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables check complete.")
    yield
    logger.info("Delivery Service shutting down...")
    await database.engine.dispose() # Clean up engine resources

app = FastAPI(
    title="Delivery Service",
    description="Manages clients, orders and deliveries, pricing each shipment on create and update.",
    version="0.1.0",
    lifespan=lifespan # Enable lifespan context manager
)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    logger.warning(f"Rejected shipment input on {request.url.path}: {exc}")
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


def _pricing_changes(changes: dict) -> dict:
    """Picks the pricing-relevant fields out of an update, normalizing urgency."""
    picked = {field: changes[field] for field in schemas.PRICING_FIELDS if field in changes}
    if "urgency" in picked:
        picked["urgency"] = logic.normalize_urgency(picked["urgency"]).value
    return picked


def _merge_shipment(stored, changes: dict) -> dict:
    # Merge by field: anything not sent keeps the stored value
    return {field: changes.get(field, getattr(stored, field)) for field in schemas.PRICING_FIELDS}


@app.get("/health", tags=["Monitoring"], summary="Health Check")
async def health_check():
    return {"status": "healthy"}


# --- Clients ---

@app.get("/clients", response_model=list[schemas.ClientRead], tags=["Clients"], summary="List Clients")
async def list_clients(db: AsyncSession = Depends(get_db_session)):
    return await crud.list_clients(db)


@app.get("/clients/{client_id}", response_model=schemas.ClientRead, tags=["Clients"], summary="Get Client")
async def read_client(client_id: uuid.UUID, db: AsyncSession = Depends(get_db_session)):
    db_client = await crud.get_client(db, str(client_id))
    if db_client is None:
        logger.warning(f"Client requested but not found: {client_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return db_client


@app.post(
    "/clients",
    response_model=schemas.ClientRead,
    status_code=status.HTTP_201_CREATED,
    tags=["Clients"],
    summary="Create Client"
)
async def create_client(client: schemas.ClientCreate, db: AsyncSession = Depends(get_db_session)):
    """Registers a client. CPF and e-mail must not belong to anyone else."""
    if await crud.get_client_by_cpf(db, client.cpf):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CPF already registered")
    if await crud.get_client_by_email(db, client.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="E-mail already registered")
    try:
        return await crud.create_client(db, client)
    except Exception:
        logger.exception(f"Error creating client {client.name}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while creating the client."
        )


@app.put("/clients/{client_id}", response_model=schemas.ClientRead, tags=["Clients"], summary="Update Client")
async def update_client(
    client_id: uuid.UUID,
    client: schemas.ClientUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    """Updates the fields sent in the body; anything omitted keeps its current value."""
    db_client = await crud.get_client(db, str(client_id))
    if db_client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    changes = client.model_dump(exclude_unset=True, exclude_none=True)
    if "cpf" in changes:
        if changes["cpf"] == db_client.cpf:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New CPF must differ from the current one")
        if await crud.get_client_by_cpf(db, changes["cpf"]):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CPF already registered")
    if "email" in changes:
        if changes["email"] == db_client.email:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New e-mail must differ from the current one")
        if await crud.get_client_by_email(db, changes["email"]):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="E-mail already registered")

    try:
        return await crud.update_client(db, db_client, changes)
    except Exception:
        logger.exception(f"Error updating client {client_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while updating the client."
        )


@app.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Clients"], summary="Delete Client")
async def delete_client(client_id: uuid.UUID, db: AsyncSession = Depends(get_db_session)):
    db_client = await crud.get_client(db, str(client_id))
    if db_client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    if await crud.client_has_orders(db, db_client.id):
        logger.warning(f"Refusing to delete client {client_id}: orders still reference it")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Client has orders and cannot be deleted"
        )
    await crud.delete_client(db, db_client)
    return None # Return None for 204 response


# --- Orders ---

@app.get("/orders", response_model=list[schemas.OrderListItem], tags=["Orders"], summary="List Orders")
async def list_orders(db: AsyncSession = Depends(get_db_session)):
    rows = await crud.list_orders(db)
    return [
        schemas.OrderListItem(**schemas.OrderRead.model_validate(order).model_dump(), client_name=client_name)
        for order, client_name in rows
    ]


@app.get("/orders/{order_id}", response_model=schemas.OrderRead, tags=["Orders"], summary="Get Order")
async def read_order(order_id: uuid.UUID, db: AsyncSession = Depends(get_db_session)):
    db_order = await crud.get_order(db, str(order_id))
    if db_order is None:
        logger.warning(f"Order requested but not found: {order_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return db_order


@app.post(
    "/orders",
    response_model=schemas.OrderCreated,
    status_code=status.HTTP_201_CREATED,
    tags=["Orders"],
    summary="Create Order"
)
async def create_order(order: schemas.OrderCreate, db: AsyncSession = Depends(get_db_session)):
    """
    Prices the shipment and stores the order together with its first
    delivery, both in one transaction.
    """
    if await crud.get_client(db, str(order.client_id)) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    order = order.model_copy(update={"urgency": logic.normalize_urgency(order.urgency).value})
    breakdown = logic.compute_cost(
        order.distance_km, order.rate_per_km, order.weight_kg, order.rate_per_kg, order.urgency
    )
    try:
        db_order, db_delivery = await crud.create_order_with_delivery(db, order, breakdown)
    except Exception:
        logger.exception(f"Error creating order for client {order.client_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while creating the order."
        )
    return schemas.OrderCreated(
        order=schemas.OrderRead.model_validate(db_order),
        delivery_id=db_delivery.id,
        costs=breakdown
    )


@app.put("/orders/{order_id}", response_model=schemas.OrderRead, tags=["Orders"], summary="Update Order")
async def update_order(
    order_id: uuid.UUID,
    order: schemas.OrderUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    """
    Updates the fields sent in the body. When a pricing field changes the order
    is repriced and its open deliveries get the new breakdown; delivered and
    cancelled ones are left untouched.
    """
    db_order = await crud.get_order(db, str(order_id))
    if db_order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    changes = order.model_dump(exclude_unset=True, exclude_none=True)
    if "client_id" in changes:
        changes["client_id"] = str(changes["client_id"])
        if await crud.get_client(db, changes["client_id"]) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    pricing = _pricing_changes(changes)
    changes.update(pricing)
    breakdown = None
    if pricing:
        breakdown = logic.compute_cost(**_merge_shipment(db_order, pricing))

    try:
        return await crud.update_order(db, db_order, changes, breakdown)
    except Exception:
        logger.exception(f"Error updating order {order_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while updating the order."
        )


@app.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Orders"], summary="Delete Order")
async def delete_order(order_id: uuid.UUID, db: AsyncSession = Depends(get_db_session)):
    db_order = await crud.get_order(db, str(order_id))
    if db_order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    if await crud.order_has_deliveries(db, db_order.id):
        logger.warning(f"Refusing to delete order {order_id}: deliveries still reference it")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Order has deliveries and cannot be deleted"
        )
    await crud.delete_order(db, db_order)
    return None


# --- Deliveries ---

@app.get("/deliveries", response_model=list[schemas.DeliveryRead], tags=["Deliveries"], summary="List Deliveries")
async def list_deliveries(db: AsyncSession = Depends(get_db_session)):
    return await crud.list_deliveries(db)


@app.get("/deliveries/{delivery_id}", response_model=schemas.DeliveryRead, tags=["Deliveries"], summary="Get Delivery")
async def read_delivery(delivery_id: uuid.UUID, db: AsyncSession = Depends(get_db_session)):
    db_delivery = await crud.get_delivery(db, str(delivery_id))
    if db_delivery is None:
        logger.warning(f"Delivery requested but not found: {delivery_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Delivery not found")
    return db_delivery


@app.post(
    "/deliveries",
    response_model=schemas.DeliveryRead,
    status_code=status.HTTP_201_CREATED,
    tags=["Deliveries"],
    summary="Create Delivery"
)
async def create_delivery(delivery: schemas.DeliveryCreate, db: AsyncSession = Depends(get_db_session)):
    """Prices and stores a delivery. Shipment fields left out are taken from the order."""
    db_order = await crud.get_order(db, str(delivery.order_id))
    if db_order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    sent = delivery.model_dump(exclude_none=True)
    shipment = _merge_shipment(db_order, _pricing_changes(sent))
    breakdown = logic.compute_cost(**shipment)
    try:
        return await crud.create_delivery(db, db_order.id, shipment, breakdown, delivery.status)
    except Exception:
        logger.exception(f"Error creating delivery for order {delivery.order_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while creating the delivery."
        )


@app.put("/deliveries/{delivery_id}", response_model=schemas.DeliveryRead, tags=["Deliveries"], summary="Update Delivery")
async def update_delivery(
    delivery_id: uuid.UUID,
    delivery: schemas.DeliveryUpdate,
    db: AsyncSession = Depends(get_db_session)
):
    """Updates status, order reference or shipment fields, repricing when needed."""
    db_delivery = await crud.get_delivery(db, str(delivery_id))
    if db_delivery is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Delivery not found")

    changes = delivery.model_dump(exclude_unset=True, exclude_none=True)
    if "order_id" in changes:
        changes["order_id"] = str(changes["order_id"])
        if await crud.get_order(db, changes["order_id"]) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    if "status" in changes:
        changes["status"] = changes["status"].value

    pricing = _pricing_changes(changes)
    changes.update(pricing)
    breakdown = None
    if pricing:
        breakdown = logic.compute_cost(**_merge_shipment(db_delivery, pricing))

    try:
        return await crud.update_delivery(db, db_delivery, changes, breakdown)
    except Exception:
        logger.exception(f"Error updating delivery {delivery_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while updating the delivery."
        )


@app.delete("/deliveries/{delivery_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Deliveries"], summary="Delete Delivery")
async def delete_delivery(delivery_id: uuid.UUID, db: AsyncSession = Depends(get_db_session)):
    deleted = await crud.delete_delivery(db, str(delivery_id))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Delivery not found")
    return None


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("delivery_service.main:app", host=config.APP_HOST, port=config.APP_PORT)
