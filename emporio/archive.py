# emporio/archive.py
"""
History Archive: registro somente-inclusão dos pedidos finalizados.

O snapshot é desnormalizado (cópia dos campos + itens em JSON) para que
editar ou apagar o pedido depois não altere o histórico.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Callable, List

from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from .models import HistoryRead, HistoryRecord, OrderRead


class HistoryArchive:
    def __init__(self, engine: Engine, *, clock: Callable[[], datetime] = datetime.now):
        self.engine = engine
        self.clock = clock

    def record(self, session: Session, order: OrderRead, *, created_at: datetime) -> HistoryRecord:
        """
        Grava o snapshot na sessão (transação) de quem chamou.
        `created_at` é o horário ORIGINAL de criação do pedido.
        """
        items_json = json.dumps(
            [item.model_dump(mode="json") for item in order.items],
            ensure_ascii=False,
        )
        rec = HistoryRecord(
            order_id=order.id,
            name=order.name,
            phone=order.phone,
            total=order.total,
            payment=order.payment,
            status=order.status.value,
            items_json=items_json,
            order_date=order.order_date,
            created_at=created_at,
            resolved_at=self.clock(),
        )
        session.add(rec)
        session.flush()
        return rec

    def exists(self, session: Session, order_id: int) -> bool:
        stmt = select(HistoryRecord.id).where(col(HistoryRecord.order_id) == order_id).limit(1)
        return session.exec(stmt).first() is not None

    @staticmethod
    def _read(rec: HistoryRecord) -> HistoryRead:
        return HistoryRead.model_validate(rec, update={"items": json.loads(rec.items_json)})

    def list(self) -> List[HistoryRead]:
        with Session(self.engine) as s:
            rows = s.exec(select(HistoryRecord).order_by(col(HistoryRecord.id).desc())).all()
            return [self._read(r) for r in rows]

    def for_order(self, order_id: int) -> List[HistoryRead]:
        with Session(self.engine) as s:
            stmt = (
                select(HistoryRecord)
                .where(col(HistoryRecord.order_id) == order_id)
                .order_by(col(HistoryRecord.id))
            )
            return [self._read(r) for r in s.exec(stmt).all()]
