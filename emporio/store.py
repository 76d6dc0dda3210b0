# emporio/store.py
"""
Order Store: CRUD transacional sobre `orders` + `order_items`.

Toda escrita de várias linhas (pedido + itens) acontece em uma única
transação: ou tudo é gravado, ou nada.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Union

import pydantic
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from .db import get_session
from .errors import NotFoundError, PersistenceError, ValidationError
from .models import (
    LineItemIn,
    Order,
    OrderItem,
    OrderItemRead,
    OrderRead,
    OrderStatus,
    OrderUpdate,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")
MILLI = Decimal("0.001")
# subtotal informado pode divergir de qty * price no máximo em 1 centavo
SUBTOTAL_TOLERANCE = Decimal("0.01")

_STATUSES = {s.value for s in OrderStatus}

ItemLike = Union[LineItemIn, Dict[str, Any]]


def _first_error(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    where = ".".join(str(p) for p in err.get("loc", ())) or "valor"
    return f"{where}: {err.get('msg', 'inválido')}"


def normalize_items(items: Optional[Iterable[ItemLike]]) -> List[LineItemIn]:
    """
    Valida os itens e devolve cópias normalizadas (tipo sem espaços, valores
    quantizados, subtotal calculado quando ausente).
    """
    raw_items = list(items or [])
    if not raw_items:
        raise ValidationError("Informe ao menos um item.")

    out: List[LineItemIn] = []
    for pos, raw in enumerate(raw_items, start=1):
        try:
            item = LineItemIn.model_validate(raw)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Item {pos} inválido ({_first_error(e)}).") from e

        kind = (item.type or "").strip()
        if not kind:
            raise ValidationError(f"Item {pos}: tipo é obrigatório.")
        if not item.qty.is_finite() or item.qty <= 0:
            raise ValidationError(f"Item {pos}: quantidade deve ser maior que zero.")
        if not item.price.is_finite() or item.price < 0:
            raise ValidationError(f"Item {pos}: preço não pode ser negativo.")

        expected = item.qty * item.price
        subtotal = expected if item.subtotal is None else item.subtotal
        if not subtotal.is_finite() or abs(subtotal - expected) > SUBTOTAL_TOLERANCE:
            raise ValidationError(
                f"Item {pos}: subtotal {subtotal} não confere com qty x price ({expected:.2f})."
            )

        out.append(
            LineItemIn(
                type=kind,
                qty=item.qty.quantize(MILLI),
                price=item.price.quantize(CENT),
                subtotal=subtotal.quantize(CENT),
            )
        )
    return out


def items_total(items: Sequence[LineItemIn]) -> Decimal:
    return sum((i.subtotal for i in items), ZERO).quantize(CENT)


class OrderStore:
    def __init__(
        self,
        engine: Engine,
        *,
        today: Callable[[], date] = date.today,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.engine = engine
        self.today = today
        self.clock = clock

    # ---------- Transação ----------

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Abre uma sessão; commit ao final, rollback em qualquer erro.
        Erros do SQLAlchemy viram PersistenceError.
        """
        session = get_session(self.engine)
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("[Pedidos] Transação desfeita")
            raise PersistenceError(type(e).__name__) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ---------- Helpers de sessão ----------

    def load(self, session: Session, order_id: int) -> Order:
        order = session.get(Order, order_id)
        if order is None:
            raise NotFoundError(order_id)
        return order

    def items_for(self, session: Session, order_id: int) -> List[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(col(OrderItem.order_id) == order_id)
            .order_by(col(OrderItem.id))
        )
        return list(session.exec(stmt).all())

    def hydrate(self, session: Session, order: Order) -> OrderRead:
        items = [OrderItemRead.model_validate(i) for i in self.items_for(session, order.id)]
        return OrderRead.model_validate(order, update={"items": items})

    def hydrate_many(self, session: Session, orders: Sequence[Order]) -> List[OrderRead]:
        """Hidrata vários pedidos com uma única consulta de itens."""
        if not orders:
            return []
        ids = [o.id for o in orders]
        stmt = (
            select(OrderItem)
            .where(col(OrderItem.order_id).in_(ids))
            .order_by(col(OrderItem.id))
        )
        by_order: Dict[int, List[OrderItemRead]] = defaultdict(list)
        for item in session.exec(stmt).all():
            by_order[item.order_id].append(OrderItemRead.model_validate(item))
        return [
            OrderRead.model_validate(o, update={"items": by_order.get(o.id, [])})
            for o in orders
        ]

    def _insert_items(self, session: Session, order_id: int, items: Sequence[LineItemIn]) -> None:
        for item in items:
            session.add(
                OrderItem(
                    order_id=order_id,
                    type=item.type,
                    qty=item.qty,
                    price=item.price,
                    subtotal=item.subtotal,
                )
            )
        session.flush()

    def apply_changes(
        self,
        session: Session,
        order: Order,
        changes: Union[OrderUpdate, Dict[str, Any]],
    ) -> None:
        """
        Aplica uma atualização parcial ao pedido carregado na sessão.
        Campos ausentes ou None ficam como estão; `items`, se presente,
        substitui o conjunto inteiro e recalcula o total.
        """
        if not isinstance(changes, OrderUpdate):
            try:
                changes = OrderUpdate.model_validate(changes)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Dados inválidos ({_first_error(e)}).") from e

        fields = {
            k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None
        }

        # valida tudo antes de tocar no pedido
        if "name" in fields:
            fields["name"] = fields["name"].strip()
            if not fields["name"]:
                raise ValidationError("Nome não pode ficar vazio.")
        if "payment" in fields:
            fields["payment"] = fields["payment"].strip()
            if not fields["payment"]:
                raise ValidationError("Forma de pagamento não pode ficar vazia.")
        if "status" in fields and fields["status"] not in _STATUSES:
            raise ValidationError(f"Status inválido: {fields['status']}")
        items = normalize_items(fields.pop("items")) if "items" in fields else None

        for key, value in fields.items():
            setattr(order, key, value)

        if items is not None:
            for old in self.items_for(session, order.id):
                session.delete(old)
            session.flush()
            self._insert_items(session, order.id, items)
            order.total = items_total(items)

        order.updated_at = self.clock()
        session.add(order)
        session.flush()

    # ---------- Operações ----------

    def create(
        self,
        name: str,
        items: Optional[Iterable[ItemLike]],
        payment: str,
        phone: Optional[str] = None,
        order_date: Optional[date] = None,
    ) -> OrderRead:
        name = (name or "").strip()
        payment = (payment or "").strip()
        if not name:
            raise ValidationError("Nome é obrigatório.")
        if not payment:
            raise ValidationError("Forma de pagamento é obrigatória.")
        lines = normalize_items(items)

        now = self.clock()
        with self.transaction() as s:
            order = Order(
                name=name,
                phone=(phone or "").strip(),
                total=items_total(lines),
                payment=payment,
                status=OrderStatus.pending.value,
                order_date=order_date or self.today(),
                created_at=now,
                updated_at=now,
            )
            s.add(order)
            s.flush()  # libera order.id
            self._insert_items(s, order.id, lines)
            created = self.hydrate(s, order)

        logger.info(f"[Pedidos] #{created.id} criado ({created.name}, total {created.total})")
        return created

    def get(self, order_id: int) -> OrderRead:
        with self.transaction() as s:
            return self.hydrate(s, self.load(s, order_id))

    def list(self) -> List[OrderRead]:
        """Todos os pedidos, do id mais novo para o mais antigo."""
        with self.transaction() as s:
            orders = s.exec(select(Order).order_by(col(Order.id).desc())).all()
            return self.hydrate_many(s, orders)

    def update(self, order_id: int, changes: Union[OrderUpdate, Dict[str, Any]]) -> OrderRead:
        """Atualização parcial simples, sem regras de ciclo de vida."""
        with self.transaction() as s:
            order = self.load(s, order_id)
            self.apply_changes(s, order, changes)
            return self.hydrate(s, order)

    def delete(self, order_id: int) -> bool:
        """Remove o pedido e seus itens. Retorna False se o id não existe."""
        with self.transaction() as s:
            order = s.get(Order, order_id)
            if order is None:
                return False
            for item in self.items_for(s, order_id):
                s.delete(item)
            s.delete(order)
        logger.info(f"[Pedidos] #{order_id} removido")
        return True
