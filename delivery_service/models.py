from sqlalchemy import Column, String, Numeric, TIMESTAMP, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
import uuid
from .database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(40), nullable=False)
    cpf = Column(String(14), nullable=False, unique=True, index=True)
    phone = Column(String(12), nullable=False)
    email = Column(String(100), nullable=False, unique=True, index=True)
    address = Column(String(250), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Client(id='{self.id}', name='{self.name}')>"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_new_id)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    order_date = Column(TIMESTAMP(timezone=True), nullable=False)
    urgency = Column(String(20), nullable=False)
    distance_km = Column(Numeric(10, 2), nullable=False)
    rate_per_km = Column(Numeric(10, 2), nullable=False)
    weight_kg = Column(Numeric(10, 2), nullable=False)
    rate_per_kg = Column(Numeric(10, 2), nullable=False)
    final_cost = Column(Numeric(10, 2), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint('final_cost >= 0', name='orders_final_cost_non_negative'),
    )

    def __repr__(self):
        return f"<Order(id='{self.id}', client_id='{self.client_id}', final_cost={self.final_cost})>"


class Delivery(Base):
    __tablename__ = "deliveries"

    id = Column(String(36), primary_key=True, default=_new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)

    # Shipment attributes the breakdown was priced from
    urgency = Column(String(20), nullable=False)
    distance_km = Column(Numeric(10, 2), nullable=False)
    rate_per_km = Column(Numeric(10, 2), nullable=False)
    weight_kg = Column(Numeric(10, 2), nullable=False)
    rate_per_kg = Column(Numeric(10, 2), nullable=False)

    # Cost breakdown snapshot
    distance_cost = Column(Numeric(10, 2), nullable=False)
    weight_cost = Column(Numeric(10, 2), nullable=False)
    base_cost = Column(Numeric(10, 2), nullable=False)
    surcharge = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False)
    extra_fee = Column(Numeric(10, 2), nullable=False)
    final_cost = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default="calculated")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint('final_cost >= 0', name='deliveries_final_cost_non_negative'),
    )

    def __repr__(self):
        return f"<Delivery(id='{self.id}', order_id='{self.order_id}', status='{self.status}')>"
