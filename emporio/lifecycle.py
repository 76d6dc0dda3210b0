# emporio/lifecycle.py
"""
Lifecycle Manager: regras de transição de status do pedido.

Quando um pedido sai de `pending` para `paid` ou `cancelled`, grava um
snapshot no histórico na MESMA transação da alteração. Transições entre
estados finais (paid <-> cancelled) nunca geram um segundo registro.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, Optional, Union

from .archive import HistoryArchive
from .models import TERMINAL_STATUSES, OrderRead, OrderStatus, OrderUpdate
from .store import ItemLike, OrderStore

logger = logging.getLogger(__name__)


class LifecycleManager:
    def __init__(self, store: OrderStore, archive: HistoryArchive):
        self.store = store
        self.archive = archive

    def create(
        self,
        name: str,
        items: Optional[Iterable[ItemLike]],
        payment: str,
        phone: Optional[str] = None,
        order_date: Optional[date] = None,
    ) -> OrderRead:
        return self.store.create(
            name=name, items=items, payment=payment, phone=phone, order_date=order_date
        )

    def update(self, order_id: int, changes: Union[OrderUpdate, Dict[str, Any]]) -> OrderRead:
        with self.store.transaction() as s:
            order = self.store.load(s, order_id)
            previous = order.status
            created_at = order.created_at

            self.store.apply_changes(s, order, changes)
            updated = self.store.hydrate(s, order)

            archived = (
                previous == OrderStatus.pending.value
                and order.status in TERMINAL_STATUSES
                and not self.archive.exists(s, order.id)  # só a PRIMEIRA saída de pending
            )
            if archived:
                self.archive.record(s, updated, created_at=created_at)

        if archived:
            logger.info(f"[Pedidos] #{order_id} {previous} -> {updated.status.value}, arquivado no histórico")
        elif previous != updated.status.value:
            logger.info(f"[Pedidos] #{order_id} {previous} -> {updated.status.value}")
        return updated

    def delete(self, order_id: int) -> bool:
        # sem efeitos de ciclo de vida: o histórico já gravado permanece
        return self.store.delete(order_id)
