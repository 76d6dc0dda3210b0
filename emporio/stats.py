# emporio/stats.py
"""
Aggregation Engine: estatísticas somente-leitura sobre os pedidos.

- receita e totais por forma de pagamento: apenas pedidos `paid`
- quantidades por tipo de item: tudo exceto `cancelled` (pendentes contam
  como mercadoria reservada)
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import Session, col, select

from .models import Order, OrderItem, OrderRead, OrderStatus
from .store import CENT, ZERO, OrderStore

# Taxonomia fixa do resumo diário
MEAT_TYPES = ("meat", "ribs")
CHICKEN_TYPE = "chicken"

_PAID = OrderStatus.paid.value
_PENDING = OrderStatus.pending.value
_CANCELLED = OrderStatus.cancelled.value


class StatusCounts(BaseModel):
    total: int = 0
    paid: int = 0
    pending: int = 0
    cancelled: int = 0


class StatsSummary(BaseModel):
    total_orders: int
    paid: int
    pending: int
    cancelled: int
    revenue: Decimal
    item_totals: Dict[str, Decimal]
    payment_totals: Dict[str, Decimal]


class DailySnapshot(BaseModel):
    day: date
    orders: List[OrderRead]
    paid_count: int
    pending_count: int
    revenue: Decimal
    meat_kg: Decimal
    chicken_units: Decimal


def _dec(value: object) -> Decimal:
    return ZERO if value is None else Decimal(str(value))


class SalesStats:
    def __init__(self, store: OrderStore):
        self.store = store

    @contextmanager
    def _reading(self, session: Optional[Session]) -> Iterator[Session]:
        if session is not None:
            yield session
            return
        with Session(self.store.engine) as s:
            yield s

    def counts_by_status(self, session: Optional[Session] = None) -> StatusCounts:
        with self._reading(session) as s:
            rows = s.exec(
                select(Order.status, func.count(col(Order.id))).group_by(Order.status)
            ).all()
        by_status = {status: int(n) for status, n in rows}
        return StatusCounts(
            total=sum(by_status.values()),
            paid=by_status.get(_PAID, 0),
            pending=by_status.get(_PENDING, 0),
            cancelled=by_status.get(_CANCELLED, 0),
        )

    def revenue(self, session: Optional[Session] = None) -> Decimal:
        with self._reading(session) as s:
            value = s.exec(
                select(func.sum(col(Order.total))).where(col(Order.status) == _PAID)
            ).one()
        return _dec(value).quantize(CENT)

    def item_totals(
        self,
        session: Optional[Session] = None,
        *,
        on_date: Optional[date] = None,
    ) -> Dict[str, Decimal]:
        stmt = (
            select(OrderItem.type, func.sum(col(OrderItem.qty)))
            .join(Order, col(Order.id) == col(OrderItem.order_id))
            .where(col(Order.status) != _CANCELLED)
        )
        if on_date is not None:
            stmt = stmt.where(col(Order.order_date) == on_date)
        stmt = stmt.group_by(OrderItem.type).order_by(OrderItem.type)
        with self._reading(session) as s:
            rows = s.exec(stmt).all()
        return {kind: _dec(qty) for kind, qty in rows}

    def payment_totals(self, session: Optional[Session] = None) -> Dict[str, Decimal]:
        stmt = (
            select(Order.payment, func.sum(col(Order.total)))
            .where(col(Order.status) == _PAID)
            .group_by(Order.payment)
            .order_by(Order.payment)
        )
        with self._reading(session) as s:
            rows = s.exec(stmt).all()
        return {payment: _dec(total).quantize(CENT) for payment, total in rows}

    def daily_snapshot(self, on_date: date) -> Optional[DailySnapshot]:
        """Pedidos não cancelados com order_date == on_date; None se não houver nenhum."""
        with self._reading(None) as s:
            orders = s.exec(
                select(Order)
                .where(col(Order.order_date) == on_date, col(Order.status) != _CANCELLED)
                .order_by(col(Order.id))
            ).all()
            if not orders:
                return None
            hydrated = self.store.hydrate_many(s, orders)
            items = self.item_totals(s, on_date=on_date)

        paid = [o for o in hydrated if o.status == OrderStatus.paid]
        pending = [o for o in hydrated if o.status == OrderStatus.pending]
        return DailySnapshot(
            day=on_date,
            orders=hydrated,
            paid_count=len(paid),
            pending_count=len(pending),
            revenue=sum((o.total for o in paid), ZERO).quantize(CENT),
            meat_kg=sum((items.get(t, ZERO) for t in MEAT_TYPES), ZERO),
            chicken_units=items.get(CHICKEN_TYPE, ZERO),
        )

    def summary(self) -> StatsSummary:
        # uma única sessão para as consultas do pacote
        with self._reading(None) as s:
            counts = self.counts_by_status(s)
            return StatsSummary(
                total_orders=counts.total,
                paid=counts.paid,
                pending=counts.pending,
                cancelled=counts.cancelled,
                revenue=self.revenue(s),
                item_totals=self.item_totals(s),
                payment_totals=self.payment_totals(s),
            )
