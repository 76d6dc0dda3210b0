# emporio/digest.py
"""
Monta o texto do resumo diário de vendas (formato WhatsApp, pt-BR).

Função pura: recebe o DailySnapshot e devolve o texto, ou None quando não há
pedidos (nesse caso nada deve ser enviado).
"""
from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from .stats import DailySnapshot

NO_ORDERS_MESSAGE = "Nenhum pedido para essa data."

WEEKDAYS_PT = (
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
)


def format_brl(value: object) -> str:
    """R$ com duas casas e vírgula decimal (ex.: `R$ 1234,50`)."""
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return "R$ " + f"{amount:.2f}".replace(".", ",")


def format_date_br(day: date) -> str:
    return f"{WEEKDAYS_PT[day.weekday()]}, {day:%d/%m/%Y}"


def build_digest(
    snapshot: Optional[DailySnapshot],
    *,
    store_name: str = "Biazzi Empório da Carne",
    app_name: str = "Biazzi",
) -> Optional[str]:
    if snapshot is None or not snapshot.orders:
        return None

    meat = snapshot.meat_kg.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    chicken = snapshot.chicken_units.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    lines: List[Optional[str]] = [
        f"🥩 *{store_name}*",
        f"📅 Resumo de {format_date_br(snapshot.day)}",
        "",
        "📦 *Pedidos*",
        f"  • Total: {len(snapshot.orders)}",
        f"  • Pagos: {snapshot.paid_count}",
        f"  • Pendentes: {snapshot.pending_count}" if snapshot.pending_count > 0 else None,
        "",
        "🍖 *Produtos Vendidos*",
        f"  • 🥩 Carne & Costela: {meat:.2f} kg" if snapshot.meat_kg > 0 else None,
        f"  • 🍗 Frango Assado: {chicken:.0f} unidades" if snapshot.chicken_units > 0 else None,
        "",
        f"💰 *Receita do Dia: {format_brl(snapshot.revenue)}*",
        "",
        f"_Enviado automaticamente pelo app {app_name}_",
    ]
    return "\n".join(line for line in lines if line is not None)
