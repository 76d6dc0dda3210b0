# emporio/models.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlmodel import Field, SQLModel


class OrderStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.paid.value, OrderStatus.cancelled.value})

# ---------------------------------------------------------------------------
# Tabelas (o conjunto de colunas é o contrato de armazenamento)
# ---------------------------------------------------------------------------

class Order(SQLModel, table=True):
    __tablename__ = "orders"
    # ids nunca são reaproveitados: o histórico guarda order_id de pedidos apagados
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    phone: str = ""
    total: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    payment: str
    status: str = Field(default=OrderStatus.pending.value, index=True)
    order_date: date = Field(index=True)
    created_at: datetime
    updated_at: datetime


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    type: str     # meat, ribs, chicken...
    qty: Decimal = Field(max_digits=10, decimal_places=3)  # kg ou unidades, depende do tipo
    price: Decimal = Field(max_digits=12, decimal_places=2)
    subtotal: Decimal = Field(max_digits=12, decimal_places=2)


class HistoryRecord(SQLModel, table=True):
    """Snapshot imutável de um pedido no momento em que saiu de `pending`."""

    __tablename__ = "history"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: Optional[int] = Field(default=None, index=True)  # sem FK: o pedido pode ser apagado
    name: str
    phone: str = ""
    total: Decimal = Field(max_digits=12, decimal_places=2)
    payment: str
    status: str
    items_json: str = Field(sa_column=Column(Text, nullable=False))
    order_date: Optional[date] = None
    created_at: datetime
    resolved_at: datetime


class SchemaMigration(SQLModel, table=True):
    __tablename__ = "schema_migrations"

    version: int = Field(primary_key=True)
    name: str
    applied_at: datetime

# ---------------------------------------------------------------------------
# Entrada
# ---------------------------------------------------------------------------

class LineItemIn(SQLModel):
    type: str = ""
    qty: Decimal
    price: Decimal
    subtotal: Optional[Decimal] = None  # se ausente, calculado como qty * price


class OrderCreate(SQLModel):
    name: str = ""
    phone: Optional[str] = None
    items: List[LineItemIn] = []
    payment: str = ""
    order_date: Optional[date] = None


class OrderUpdate(SQLModel):
    """Atualização parcial: campos ausentes (ou None) mantêm o valor atual."""

    name: Optional[str] = None
    phone: Optional[str] = None
    items: Optional[List[LineItemIn]] = None
    payment: Optional[str] = None
    status: Optional[str] = None
    order_date: Optional[date] = None

# ---------------------------------------------------------------------------
# Saída (pedido "hidratado" com itens)
# ---------------------------------------------------------------------------

class OrderItemRead(SQLModel):
    id: int
    order_id: int
    type: str
    qty: Decimal
    price: Decimal
    subtotal: Decimal


class OrderRead(SQLModel):
    id: int
    name: str
    phone: str
    total: Decimal
    payment: str
    status: OrderStatus
    order_date: date
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemRead] = []


class HistoryRead(SQLModel):
    id: int
    order_id: Optional[int]
    name: str
    phone: str
    total: Decimal
    payment: str
    status: OrderStatus
    items_json: str
    order_date: Optional[date]
    created_at: datetime
    resolved_at: datetime
    items: List[OrderItemRead] = []
