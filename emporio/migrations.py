# emporio/migrations.py
"""
Migrações de esquema versionadas.

Cada migração roda uma única vez, na ordem da versão, dentro da própria
transação, e fica registrada em `schema_migrations`. Verificações de coluna
usam o inspector do SQLAlchemy: coluna já existente é no-op.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, List, NamedTuple, Set

from sqlalchemy import Date, bindparam, insert, inspect, select, text
from sqlalchemy.engine import Connection, Engine
from sqlmodel import SQLModel

from .models import HistoryRecord, Order, OrderItem, SchemaMigration

logger = logging.getLogger(__name__)


class Migration(NamedTuple):
    version: int
    name: str
    apply: Callable[[Connection], None]


def column_names(conn: Connection | Engine, table: str) -> List[str]:
    return [c["name"] for c in inspect(conn).get_columns(table)]


def _as_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value).date()
    return date.today()

# ---------- Migrações ----------

def _create_core_tables(conn: Connection) -> None:
    SQLModel.metadata.create_all(
        conn,
        tables=[Order.__table__, OrderItem.__table__, HistoryRecord.__table__],
    )


def _orders_order_date(conn: Connection) -> None:
    """Bases antigas não tinham order_date; preenche a partir de created_at."""
    if "order_date" in column_names(conn, "orders"):
        return
    conn.execute(text("ALTER TABLE orders ADD COLUMN order_date DATE"))
    rows = conn.execute(
        text("SELECT id, created_at FROM orders WHERE order_date IS NULL")
    ).all()
    stmt = text("UPDATE orders SET order_date = :d WHERE id = :id").bindparams(
        bindparam("d", type_=Date)
    )
    for order_id, created_at in rows:
        conn.execute(stmt, {"d": _as_date(created_at), "id": order_id})


def _history_order_date(conn: Connection) -> None:
    if "order_date" in column_names(conn, "history"):
        return
    conn.execute(text("ALTER TABLE history ADD COLUMN order_date DATE"))


_ORDER_COLUMNS = "id, name, phone, total, payment, status, order_date, created_at, updated_at"
_ITEM_COLUMNS = "id, order_id, type, qty, price, subtotal"


def has_autoincrement(conn: Connection, table: str) -> bool:
    ddl = conn.execute(
        text("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :t"),
        {"t": table},
    ).scalar()
    return "AUTOINCREMENT" in (ddl or "").upper()


def _orders_autoincrement(conn: Connection) -> None:
    """
    SQLite sem AUTOINCREMENT reaproveita o maior id apagado. Recria `orders`
    com AUTOINCREMENT (cópia temporária, sem perder os itens) e inicia a
    sequência acima de qualquer order_id já visto no histórico.
    """
    if conn.dialect.name != "sqlite" or has_autoincrement(conn, "orders"):
        return
    conn.execute(text(
        f"CREATE TEMP TABLE _orders_copy AS SELECT {_ORDER_COLUMNS} FROM orders"
    ))
    conn.execute(text(
        f"CREATE TEMP TABLE _items_copy AS SELECT {_ITEM_COLUMNS} FROM order_items"
    ))
    # com foreign_keys=ON o DROP apaga os itens em cascata; eles voltam da cópia
    conn.execute(text("DROP TABLE orders"))
    Order.__table__.create(conn)
    conn.execute(text(
        f"INSERT INTO orders ({_ORDER_COLUMNS})"
        f" SELECT id, name, COALESCE(phone, ''), total, payment, status,"
        f" order_date, created_at, updated_at FROM _orders_copy"
    ))
    conn.execute(text("DELETE FROM order_items"))
    conn.execute(text(
        f"INSERT INTO order_items ({_ITEM_COLUMNS}) SELECT {_ITEM_COLUMNS} FROM _items_copy"
    ))
    conn.execute(text("DROP TABLE _orders_copy"))
    conn.execute(text("DROP TABLE _items_copy"))

    last_id = conn.execute(text(
        "SELECT MAX(m) FROM ("
        " SELECT MAX(id) AS m FROM orders"
        " UNION ALL SELECT MAX(order_id) FROM history)"
    )).scalar()
    conn.execute(text("DELETE FROM sqlite_sequence WHERE name = 'orders'"))
    conn.execute(
        text("INSERT INTO sqlite_sequence (name, seq) VALUES ('orders', :seq)"),
        {"seq": int(last_id or 0)},
    )


MIGRATIONS: List[Migration] = [
    Migration(1, "create_core_tables", _create_core_tables),
    Migration(2, "orders_order_date", _orders_order_date),
    Migration(3, "history_order_date", _history_order_date),
    Migration(4, "orders_autoincrement", _orders_autoincrement),
]

# ---------- Runner ----------

def applied_versions(engine: Engine) -> Set[int]:
    SQLModel.metadata.create_all(engine, tables=[SchemaMigration.__table__])
    with engine.connect() as conn:
        return set(conn.execute(select(SchemaMigration.__table__.c.version)).scalars())


def run_migrations(engine: Engine) -> List[int]:
    """Aplica as migrações pendentes e retorna as versões aplicadas agora."""
    done = applied_versions(engine)
    applied: List[int] = []
    for migration in sorted(MIGRATIONS, key=lambda m: m.version):
        if migration.version in done:
            continue
        with engine.begin() as conn:
            migration.apply(conn)
            conn.execute(
                insert(SchemaMigration.__table__).values(
                    version=migration.version,
                    name=migration.name,
                    applied_at=datetime.now(),
                )
            )
        logger.info(f"[Migrations] v{migration.version} aplicada: {migration.name}")
        applied.append(migration.version)
    if not applied:
        logger.debug("[Migrations] Banco já está atualizado.")
    return applied
