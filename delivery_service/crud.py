from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
from pricing_service.schemas import CostBreakdown
from . import schemas, models
import logging

logger = logging.getLogger(__name__)


def _apply_breakdown(delivery: models.Delivery, breakdown: CostBreakdown):
    for field, value in breakdown.model_dump().items():
        setattr(delivery, field, value)


# --- Clients ---

async def list_clients(db: AsyncSession) -> list[models.Client]:
    result = await db.execute(select(models.Client).order_by(models.Client.created_at))
    return list(result.scalars().all())

async def get_client(db: AsyncSession, client_id: str) -> models.Client | None:
    result = await db.execute(select(models.Client).filter(models.Client.id == client_id))
    return result.scalars().first()

async def get_client_by_cpf(db: AsyncSession, cpf: str) -> models.Client | None:
    result = await db.execute(select(models.Client).filter(models.Client.cpf == cpf))
    return result.scalars().first()

async def get_client_by_email(db: AsyncSession, email: str) -> models.Client | None:
    result = await db.execute(select(models.Client).filter(models.Client.email == email))
    return result.scalars().first()

async def create_client(db: AsyncSession, client: schemas.ClientCreate) -> models.Client:
    db_client = models.Client(**client.model_dump())
    db.add(db_client)
    await db.commit()
    await db.refresh(db_client)
    logger.info(f"Created client '{db_client.id}' ({db_client.name})")
    return db_client

async def update_client(db: AsyncSession, db_client: models.Client, changes: dict) -> models.Client:
    for field, value in changes.items():
        setattr(db_client, field, value)
    await db.commit()
    await db.refresh(db_client)
    logger.info(f"Updated client '{db_client.id}' fields: {sorted(changes)}")
    return db_client

async def client_has_orders(db: AsyncSession, client_id: str) -> bool:
    result = await db.execute(
        select(func.count()).select_from(models.Order).where(models.Order.client_id == client_id)
    )
    return result.scalar_one() > 0

async def delete_client(db: AsyncSession, db_client: models.Client):
    await db.delete(db_client)
    await db.commit()
    logger.info(f"Deleted client '{db_client.id}'")


# --- Orders ---

async def list_orders(db: AsyncSession) -> list[tuple[models.Order, str]]:
    """Returns every order paired with its client's name."""
    stmt = (
        select(models.Order, models.Client.name)
        .join(models.Client, models.Client.id == models.Order.client_id)
        .order_by(models.Order.created_at)
    )
    result = await db.execute(stmt)
    return [(order, client_name) for order, client_name in result.all()]

async def get_order(db: AsyncSession, order_id: str) -> models.Order | None:
    result = await db.execute(select(models.Order).filter(models.Order.id == order_id))
    return result.scalars().first()

async def create_order_with_delivery(
    db: AsyncSession,
    order: schemas.OrderCreate,
    breakdown: CostBreakdown
) -> tuple[models.Order, models.Delivery]:
    """
    Inserts the order and its initial delivery in a single transaction.
    Nothing is persisted if either insert fails.
    """
    shipment = order.model_dump(include=set(schemas.PRICING_FIELDS))
    db_order = models.Order(
        client_id=str(order.client_id),
        order_date=order.order_date,
        final_cost=breakdown.final_cost,
        **shipment
    )
    db.add(db_order)
    await db.flush() # Assigns the order id for the delivery row

    db_delivery = models.Delivery(
        order_id=db_order.id,
        status=schemas.DeliveryStatus.CALCULATED.value,
        **shipment
    )
    _apply_breakdown(db_delivery, breakdown)
    db.add(db_delivery)

    await db.commit()
    await db.refresh(db_order)
    await db.refresh(db_delivery)
    logger.info(f"Created order '{db_order.id}' with delivery '{db_delivery.id}', final cost {breakdown.final_cost:.2f}")
    return db_order, db_delivery

async def update_order(
    db: AsyncSession,
    db_order: models.Order,
    changes: dict,
    breakdown: CostBreakdown | None = None
) -> models.Order:
    """
    Applies field changes to an order. When a new breakdown is given, the order's
    final cost and its open deliveries are repriced from it. Delivered and
    cancelled deliveries keep their attributes and breakdown as they were.
    """
    for field, value in changes.items():
        setattr(db_order, field, value)

    if breakdown is not None:
        db_order.final_cost = breakdown.final_cost
        shipment = {field: getattr(db_order, field) for field in schemas.PRICING_FIELDS}
        for db_delivery in await list_deliveries_for_order(db, db_order.id):
            if db_delivery.status in schemas.FINAL_STATUSES:
                logger.info(f"Keeping breakdown of {db_delivery.status} delivery '{db_delivery.id}'")
                continue
            for field, value in shipment.items():
                setattr(db_delivery, field, value)
            _apply_breakdown(db_delivery, breakdown)
            logger.info(f"Repriced delivery '{db_delivery.id}' from order '{db_order.id}'")

    await db.commit()
    await db.refresh(db_order)
    logger.info(f"Updated order '{db_order.id}' fields: {sorted(changes)}")
    return db_order

async def order_has_deliveries(db: AsyncSession, order_id: str) -> bool:
    result = await db.execute(
        select(func.count()).select_from(models.Delivery).where(models.Delivery.order_id == order_id)
    )
    return result.scalar_one() > 0

async def delete_order(db: AsyncSession, db_order: models.Order):
    await db.delete(db_order)
    await db.commit()
    logger.info(f"Deleted order '{db_order.id}'")


# --- Deliveries ---

async def list_deliveries(db: AsyncSession) -> list[models.Delivery]:
    result = await db.execute(select(models.Delivery).order_by(models.Delivery.created_at))
    return list(result.scalars().all())

async def list_deliveries_for_order(db: AsyncSession, order_id: str) -> list[models.Delivery]:
    result = await db.execute(select(models.Delivery).where(models.Delivery.order_id == order_id))
    return list(result.scalars().all())

async def get_delivery(db: AsyncSession, delivery_id: str) -> models.Delivery | None:
    result = await db.execute(select(models.Delivery).filter(models.Delivery.id == delivery_id))
    return result.scalars().first()

async def create_delivery(
    db: AsyncSession,
    order_id: str,
    shipment: dict,
    breakdown: CostBreakdown,
    status: schemas.DeliveryStatus
) -> models.Delivery:
    db_delivery = models.Delivery(order_id=order_id, status=status.value, **shipment)
    _apply_breakdown(db_delivery, breakdown)
    db.add(db_delivery)
    await db.commit()
    await db.refresh(db_delivery)
    logger.info(f"Created delivery '{db_delivery.id}' for order '{order_id}', final cost {breakdown.final_cost:.2f}")
    return db_delivery

async def update_delivery(
    db: AsyncSession,
    db_delivery: models.Delivery,
    changes: dict,
    breakdown: CostBreakdown | None = None
) -> models.Delivery:
    for field, value in changes.items():
        setattr(db_delivery, field, value)
    if breakdown is not None:
        _apply_breakdown(db_delivery, breakdown)
    await db.commit()
    await db.refresh(db_delivery)
    logger.info(f"Updated delivery '{db_delivery.id}' fields: {sorted(changes)}")
    return db_delivery

async def delete_delivery(db: AsyncSession, delivery_id: str) -> bool:
    db_delivery = await get_delivery(db, delivery_id)
    if db_delivery:
        await db.delete(db_delivery)
        await db.commit()
        logger.info(f"Deleted delivery '{delivery_id}'")
        return True
    logger.warning(f"Attempted to delete non-existent delivery '{delivery_id}'")
    return False
